# functions/routes/purchases.py
"""
In-app purchase verification and store notification endpoints.
"""
from typing import Any, Dict, Mapping, Optional

from firebase_functions import https_fn
from flask import Request
from pydantic import ValidationError

from firebase.admin import get_caller_uid, require_uid
from firebase.audit import record_purchase_attempt
from firebase.credits import apply_purchase_credits
from firebase.db import get_db
from utils import STATUS_ERROR, STATUS_FAILED, STATUS_VERIFIED
from utils.catalog import ProductCatalog, default_catalog
from utils.logging_config import get_logger, log_error, log_event
from utils.receipt_verifier import ReceiptVerifier, build_verifiers
from utils.validators import (
    SubscriptionUpdateRequest,
    VerifyPurchaseRequest,
    describe_validation_error,
    validate_request,
)

logger = get_logger(__name__)

_verifiers: Optional[Dict[str, ReceiptVerifier]] = None


def get_verifiers() -> Dict[str, ReceiptVerifier]:
    """Lazy-load the platform verifiers."""
    global _verifiers
    if _verifiers is None:
        _verifiers = build_verifiers()
    return _verifiers


def _invalid_argument(message: str) -> https_fn.HttpsError:
    return https_fn.HttpsError(
        code=https_fn.FunctionsErrorCode.INVALID_ARGUMENT,
        message=message,
    )


def process_purchase(
    uid: Optional[str],
    data: Any,
    db=None,
    verifiers: Optional[Mapping[str, ReceiptVerifier]] = None,
    catalog: Optional[ProductCatalog] = None,
) -> Dict[str, Any]:
    """
    Verify a store receipt and grant the product's credits.

    Every attempt by an authenticated caller leaves exactly one audit record:
    ``verified`` when credits were granted, ``failed`` when the store rejected
    the receipt, ``error`` for invalid input, unknown products and unexpected
    failures.

    Args:
        uid: Caller uid (None if unauthenticated)
        data: Callable payload {receipt, productId, platform}
        db: Optional Firestore client
        verifiers: Optional platform -> verifier mapping
        catalog: Optional product catalog

    Returns:
        {"success": bool, "credits": int, "message": str}

    Raises:
        https_fn.HttpsError: UNAUTHENTICATED, INVALID_ARGUMENT or INTERNAL
    """
    uid = require_uid(uid)
    db = db if db is not None else get_db()
    verifiers = verifiers if verifiers is not None else get_verifiers()
    catalog = catalog if catalog is not None else default_catalog

    payload = data if isinstance(data, dict) else {}
    product_id = payload.get("productId")
    platform = payload.get("platform")
    receipt = payload.get("receipt")

    log_event(logger, "purchase_auth_resolved", uid=uid, product_id=product_id, platform=platform)

    try:
        try:
            request = validate_request(VerifyPurchaseRequest, payload)
        except ValidationError as e:
            raise _invalid_argument(describe_validation_error(e)) from e

        product_id = request.product_id
        platform = request.platform

        verifier = verifiers.get(platform)
        if verifier is None:
            raise _invalid_argument("Invalid platform specified")

        log_event(logger, "purchase_verifier_dispatched", uid=uid, platform=platform,
                  verifier=type(verifier).__name__)
        result = verifier.verify(request.receipt, product_id)

        if not result.valid:
            record_purchase_attempt(
                uid, product_id, platform, receipt,
                status=STATUS_FAILED,
                error="Receipt verification failed",
                db=db,
            )
            log_event(logger, "purchase_outcome", uid=uid, product_id=product_id,
                      status=STATUS_FAILED, store_status=result.status)
            return {
                "success": False,
                "credits": 0,
                "message": "Purchase verification failed",
            }

        credits = catalog.credits_for(product_id)
        if credits == 0:
            raise _invalid_argument("Invalid product ID")

        apply_purchase_credits(uid, credits, db=db)
        record_purchase_attempt(
            uid, product_id, platform, receipt,
            status=STATUS_VERIFIED,
            credits=credits,
            purchase=result.purchase,
            environment=result.environment,
            db=db,
        )
        log_event(logger, "purchase_outcome", uid=uid, product_id=product_id,
                  status=STATUS_VERIFIED, credits=credits, environment=result.environment)

        return {
            "success": True,
            "credits": credits,
            "message": "Purchase verified successfully",
        }

    except https_fn.HttpsError as e:
        _record_error(uid, product_id, platform, receipt, e.message, db)
        log_event(logger, "purchase_outcome", uid=uid, product_id=product_id,
                  status=STATUS_ERROR, code=e.code.value)
        raise
    except Exception as e:
        log_error(logger, e, context=f"verify_purchase uid={uid} product={product_id}")
        _record_error(uid, product_id, platform, receipt, str(e) or type(e).__name__, db)
        log_event(logger, "purchase_outcome", uid=uid, product_id=product_id, status=STATUS_ERROR)
        raise https_fn.HttpsError(
            code=https_fn.FunctionsErrorCode.INTERNAL,
            message="Purchase verification failed",
        ) from e


def _record_error(uid, product_id, platform, receipt, message, db) -> None:
    # The caller still gets the original error if the audit write fails too
    try:
        record_purchase_attempt(
            uid, product_id, platform, receipt,
            status=STATUS_ERROR,
            error=message,
            db=db,
        )
    except Exception as audit_error:
        log_error(logger, audit_error, context=f"writing error audit record for {uid}")


@https_fn.on_call()
def verify_purchase(req: https_fn.CallableRequest) -> Dict[str, Any]:
    """Verify an App Store / Google Play purchase and grant credits."""
    return process_purchase(get_caller_uid(req), req.data)


def handle_apple_notification(data: Dict[str, Any]) -> None:
    """App Store Server Notifications (subscription lifecycle)."""
    logger.info(
        f"Apple subscription notification: type={data.get('notificationType')} "
        f"subtype={data.get('subtype')}"
    )


def handle_google_notification(data: Dict[str, Any]) -> None:
    """Google Play Real-time Developer Notifications."""
    subscription = data.get("subscriptionNotification") or {}
    logger.info(
        f"Google Play subscription notification: type={subscription.get('notificationType')} "
        f"package={data.get('packageName')}"
    )


NOTIFICATION_HANDLERS = {
    "apple": handle_apple_notification,
    "google": handle_google_notification,
}


def process_subscription_notification(body: Any) -> None:
    """
    Dispatch a store server notification to its platform handler.

    Unknown platforms are logged and acknowledged.
    """
    notification = validate_request(SubscriptionUpdateRequest, body)
    handler = NOTIFICATION_HANDLERS.get(notification.platform)

    if handler is None:
        logger.warning(f"Ignoring subscription notification for platform: {notification.platform}")
        return

    handler(notification.data)


@https_fn.on_request()
def handle_subscription_update(req: Request) -> https_fn.Response:
    """Server-to-server subscription status updates from Apple / Google."""
    try:
        process_subscription_notification(req.get_json(silent=True))
        return https_fn.Response("OK", status=200)
    except Exception as e:
        log_error(logger, e, context="handle_subscription_update")
        return https_fn.Response("Error processing subscription update", status=500)
