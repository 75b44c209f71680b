# functions/routes/admin.py
"""
Self-service account endpoints: credits, profile, photo gallery, push token.
Every endpoint requires an authenticated caller acting on their own data.
"""
from typing import Any, Dict, Optional

from firebase_functions import https_fn

from firebase.admin import get_caller_uid, require_own_target, require_uid
from firebase.credits import add_credits, get_user_record, update_fcm_token as store_fcm_token
from firebase.photos import (
    PhotoNotFoundError,
    PhotoPermissionError,
    delete_user_photo as delete_photo_and_objects,
    list_user_photos,
)
from utils.logging_config import get_logger, log_error
from utils.validators import (
    AddCreditsRequest,
    DeletePhotoRequest,
    FcmTokenRequest,
    UserRequest,
    validate_callable,
)

logger = get_logger(__name__)


def _internal(message: str) -> https_fn.HttpsError:
    return https_fn.HttpsError(code=https_fn.FunctionsErrorCode.INTERNAL, message=message)


def add_credits_for_caller(uid: Optional[str], data: Any, db=None) -> Dict[str, Any]:
    """Add credits to the caller's own account (manual / testing path)."""
    uid = require_uid(uid)
    require_own_target(uid, data, "Users can only add credits to their own account")
    request = validate_callable(AddCreditsRequest, data)

    try:
        total, created = add_credits(uid, request.credits, db=db)
    except Exception as e:
        log_error(logger, e, context=f"add_credits uid={uid}")
        raise _internal("Failed to add credits") from e

    if created:
        message = f"Created new user with {request.credits} credits"
    else:
        message = f"Added {request.credits} credits. New total: {total}"

    logger.info(f"✓ {message} (user {uid})")
    return {
        "success": True,
        "message": message,
        "totalCredits": total,
        "created": created,
    }


def get_info_for_caller(uid: Optional[str], data: Any, db=None) -> Dict[str, Any]:
    """Read the caller's own credit balance and flags."""
    uid = require_uid(uid)
    require_own_target(uid, data, "Users can only access their own info")
    validate_callable(UserRequest, data)

    try:
        user_data = get_user_record(uid, db=db)
    except Exception as e:
        log_error(logger, e, context=f"get_user_info uid={uid}")
        raise _internal("Failed to get user info") from e

    if user_data is None:
        return {"exists": False, "message": "User not found"}

    logger.info(f"User {uid} info: credits={user_data['credits']} premium={user_data['premium']}")
    return {"exists": True, "userData": user_data}


def list_photos_for_caller(uid: Optional[str], data: Any, db=None) -> Dict[str, Any]:
    """List the caller's own photos, newest first."""
    uid = require_uid(uid)
    require_own_target(uid, data, "Users can only access their own photos")
    validate_callable(UserRequest, data)

    try:
        photos = list_user_photos(uid, db=db)
    except Exception as e:
        log_error(logger, e, context=f"get_user_photos uid={uid}")
        raise _internal("Failed to get user photos") from e

    logger.info(f"Found {len(photos)} photos for user {uid}")
    return {"photos": photos, "total": len(photos)}


def delete_photo_for_caller(uid: Optional[str], data: Any, db=None, bucket=None) -> Dict[str, Any]:
    """Delete one of the caller's photos and its storage objects."""
    uid = require_uid(uid)
    request = validate_callable(DeletePhotoRequest, data)

    try:
        delete_photo_and_objects(uid, request.photo_id, db=db, bucket=bucket)
    except PhotoNotFoundError as e:
        raise https_fn.HttpsError(
            code=https_fn.FunctionsErrorCode.NOT_FOUND,
            message=str(e),
        ) from e
    except PhotoPermissionError as e:
        logger.warning(f"User {uid} attempted to delete photo {request.photo_id} they do not own")
        raise https_fn.HttpsError(
            code=https_fn.FunctionsErrorCode.PERMISSION_DENIED,
            message=str(e),
        ) from e
    except Exception as e:
        log_error(logger, e, context=f"delete_user_photo uid={uid} photo={request.photo_id}")
        raise _internal("Failed to delete photo") from e

    return {"success": True, "message": "Photo deleted successfully"}


def update_token_for_caller(uid: Optional[str], data: Any, db=None) -> Dict[str, Any]:
    """Store the caller's FCM registration token."""
    uid = require_uid(uid)
    request = validate_callable(FcmTokenRequest, data)

    try:
        store_fcm_token(uid, request.token, db=db)
    except Exception as e:
        log_error(logger, e, context=f"update_fcm_token uid={uid}")
        raise _internal("Failed to update FCM token") from e

    return {"success": True}


@https_fn.on_call()
def add_credits_to_user(req: https_fn.CallableRequest) -> Dict[str, Any]:
    return add_credits_for_caller(get_caller_uid(req), req.data)


@https_fn.on_call()
def get_user_info(req: https_fn.CallableRequest) -> Dict[str, Any]:
    return get_info_for_caller(get_caller_uid(req), req.data)


@https_fn.on_call()
def get_user_photos(req: https_fn.CallableRequest) -> Dict[str, Any]:
    return list_photos_for_caller(get_caller_uid(req), req.data)


@https_fn.on_call()
def delete_user_photo(req: https_fn.CallableRequest) -> Dict[str, Any]:
    return delete_photo_for_caller(get_caller_uid(req), req.data)


@https_fn.on_call()
def update_fcm_token(req: https_fn.CallableRequest) -> Dict[str, Any]:
    return update_token_for_caller(get_caller_uid(req), req.data)
