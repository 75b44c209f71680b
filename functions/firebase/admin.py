# functions/firebase/admin.py
"""
Caller authentication guards for callable functions.
"""
import logging
from typing import Any, Optional

from firebase_functions import https_fn

logger = logging.getLogger(__name__)


def get_caller_uid(req: Any) -> Optional[str]:
    """
    Extract the verified caller uid from a callable request.

    Args:
        req: https_fn.CallableRequest

    Returns:
        Caller uid if the request carried a verified ID token, None otherwise
    """
    auth = getattr(req, "auth", None)
    if auth is None:
        return None
    uid = getattr(auth, "uid", None)
    return uid or None


def require_uid(uid: Optional[str]) -> str:
    """
    Ensure the caller is authenticated.

    Raises:
        https_fn.HttpsError: UNAUTHENTICATED when no uid is present
    """
    if not uid:
        logger.warning("Authentication failed: callable invoked without a verified ID token")
        raise https_fn.HttpsError(
            code=https_fn.FunctionsErrorCode.UNAUTHENTICATED,
            message="User must be authenticated",
        )
    return uid


def require_self(uid: str, target_uid: str, message: str) -> None:
    """
    Ensure the caller only targets their own account.

    Raises:
        https_fn.HttpsError: PERMISSION_DENIED when uid differs from target_uid
    """
    if uid != target_uid:
        logger.warning(f"Permission denied: user {uid} attempted to access user {target_uid}")
        raise https_fn.HttpsError(
            code=https_fn.FunctionsErrorCode.PERMISSION_DENIED,
            message=message,
        )


def require_own_target(uid: str, data: Any, message: str) -> None:
    """
    Reject payloads whose ``userId`` names another account.

    Runs before payload validation, so a malformed request aimed at someone
    else is still PERMISSION_DENIED. A missing ``userId`` is left to validation.
    """
    target_uid = data.get("userId") if isinstance(data, dict) else None
    if target_uid is not None and target_uid != "":
        require_self(uid, target_uid, message)
