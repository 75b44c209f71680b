# functions/firebase/audit.py
"""
Append-only audit trail of purchase verification attempts (purchases collection).
"""
from typing import Any, Dict, Optional

from google.cloud.firestore import SERVER_TIMESTAMP

from config import config
from firebase.db import get_db
from utils import STATUS_ERROR, STATUS_FAILED, STATUS_VERIFIED, redact_receipt
from utils.logging_config import get_logger

logger = get_logger(__name__)

AUDIT_STATUSES = (STATUS_VERIFIED, STATUS_FAILED, STATUS_ERROR)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def record_purchase_attempt(
    uid: str,
    product_id: Any,
    platform: Any,
    receipt: Any,
    status: str,
    credits: int = 0,
    error: Optional[str] = None,
    purchase: Optional[Dict[str, Any]] = None,
    environment: Optional[str] = None,
    db=None,
) -> str:
    """
    Append one purchase attempt record.

    Args:
        uid: Caller user ID
        product_id: Requested product id (stored as given)
        platform: Declared platform (stored as given)
        receipt: Raw receipt; only a redacted preview is stored
        status: verified | failed | error
        credits: Resolved credits (0 if unresolved)
        error: Optional error message
        purchase: Matched store purchase entry, if any
        environment: Store environment that verified the receipt, if any
        db: Optional Firestore client

    Returns:
        ID of the new audit document
    """
    if status not in AUDIT_STATUSES:
        raise ValueError(f"Unknown audit status: {status}")

    db = db if db is not None else get_db()

    record: Dict[str, Any] = {
        "userId": uid,
        "productId": _as_text(product_id),
        "credits": credits,
        "receipt": redact_receipt(receipt, config.RECEIPT_PREVIEW_LENGTH),
        "platform": _as_text(platform),
        "status": status,
        "verifiedAt": SERVER_TIMESTAMP,
    }
    if error:
        record["error"] = error
    if purchase and purchase.get("transaction_id"):
        record["transactionId"] = str(purchase["transaction_id"])
    if environment:
        record["environment"] = environment

    _, doc_ref = db.collection(config.PURCHASES_COLLECTION).add(record)
    logger.info(f"Audit record {doc_ref.id} written: user={uid} status={status} credits={credits}")
    return doc_ref.id
