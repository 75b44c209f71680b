# functions/firebase/credits.py
"""
Credit ledger operations on users/{uid}.
Balances only ever change through Firestore's atomic Increment transform,
so concurrent grants for the same user commute.
"""
from typing import Any, Dict, List, Optional, Tuple

from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore import SERVER_TIMESTAMP, Increment

from config import config
from firebase.db import get_db
from utils import to_iso
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _user_ref(db, uid: str):
    return db.collection(config.USERS_COLLECTION).document(uid)


def grant_credits(
    uid: str,
    amount: int,
    stamp_field: str = "lastUpdated",
    db=None,
) -> bool:
    """
    Atomically add credits to a user, creating the ledger record if absent.

    Args:
        uid: User ID
        amount: Credits to add (positive)
        stamp_field: Extra timestamp field to stamp (e.g. "lastPurchase")
        db: Optional Firestore client

    Returns:
        True if the user record was created by this call
    """
    if amount <= 0:
        raise ValueError(f"Credit grant must be positive, got {amount}")

    db = db if db is not None else get_db()
    user_ref = _user_ref(db, uid)

    try:
        user_ref.create({
            "credits": amount,
            "premium": False,
            "createdAt": SERVER_TIMESTAMP,
            "lastUpdated": SERVER_TIMESTAMP,
            stamp_field: SERVER_TIMESTAMP,
        })
        logger.info(f"✓ Created ledger for user {uid} with {amount} credits")
        return True
    except AlreadyExists:
        pass

    user_ref.update({
        "credits": Increment(amount),
        "lastUpdated": SERVER_TIMESTAMP,
        stamp_field: SERVER_TIMESTAMP,
    })
    logger.info(f"✓ Incremented credits for user {uid} by {amount}")
    return False


def apply_purchase_credits(uid: str, amount: int, db=None) -> bool:
    """Grant purchased credits and stamp lastPurchase."""
    return grant_credits(uid, amount, stamp_field="lastPurchase", db=db)


def add_credits(uid: str, amount: int, db=None) -> Tuple[int, bool]:
    """
    Manual credit grant used by the self-service and operator paths.

    Returns:
        Tuple of (total_credits, created)
    """
    db = db if db is not None else get_db()
    created = grant_credits(uid, amount, db=db)

    if created:
        return amount, True

    # Read back after the increment; the total may include concurrent grants
    snapshot = _user_ref(db, uid).get()
    data = snapshot.to_dict() or {}
    return int(data.get("credits", 0)), False


def get_user_record(uid: str, db=None) -> Optional[Dict[str, Any]]:
    """
    Read a user's ledger record.

    Returns:
        Serializable profile dict, or None if the user has no record
    """
    db = db if db is not None else get_db()
    snapshot = _user_ref(db, uid).get()

    if not snapshot.exists:
        return None

    data = snapshot.to_dict() or {}
    return {
        "credits": data.get("credits", 0),
        "premium": data.get("premium", False),
        "createdAt": to_iso(data.get("createdAt")),
        "lastUpdated": to_iso(data.get("lastUpdated")),
        "lastPurchase": to_iso(data.get("lastPurchase")),
    }


def list_users(limit: int = 10, db=None) -> List[Dict[str, Any]]:
    """List ledger records (operator tooling only, never exposed as a callable)."""
    db = db if db is not None else get_db()
    users = []
    for doc in db.collection(config.USERS_COLLECTION).limit(limit).stream():
        data = doc.to_dict() or {}
        users.append({
            "userId": doc.id,
            "credits": data.get("credits", 0),
            "premium": data.get("premium", False),
            "createdAt": to_iso(data.get("createdAt")),
        })
    return users


def update_fcm_token(uid: str, token: str, db=None) -> None:
    """Store the caller's push token on their user record."""
    db = db if db is not None else get_db()
    _user_ref(db, uid).set({
        "fcmToken": token,
        "tokenUpdatedAt": SERVER_TIMESTAMP,
    }, merge=True)
    logger.info(f"FCM token updated for user {uid}")
