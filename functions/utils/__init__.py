# functions/utils/__init__.py
"""
Shared utilities, constants, and helper functions for the purchase and gallery functions.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Platforms accepted by verify_purchase
PLATFORM_IOS = 'ios'
PLATFORM_ANDROID = 'android'
SUPPORTED_PLATFORMS = (PLATFORM_IOS, PLATFORM_ANDROID)

# Purchase attempt statuses (audit trail)
STATUS_VERIFIED = 'verified'
STATUS_FAILED = 'failed'
STATUS_ERROR = 'error'

# Credit packages sold in the app
DEFAULT_PRODUCT_CREDITS = {
    # Basic credit packages
    'com.pethero.credits5': 5,
    'com.pethero.credits10': 10,
    'com.pethero.credits20': 20,
    'com.pethero.credits50': 50,

    # Premium packages
    'com.pethero.premium_monthly': 100,
    'com.pethero.premium_yearly': 1200,

    # Special offers
    'com.pethero.starter_pack': 15,
    'com.pethero.hero_bundle': 35,
}

# Apple verifyReceipt status codes
APPLE_STATUS_OK = 0
APPLE_STATUS_SANDBOX_RECEIPT = 21007


def redact_receipt(receipt: Any, preview_length: int = 50) -> str:
    """
    Build the receipt preview stored in the audit trail.

    Only the first ``preview_length`` characters are kept, followed by ``...``.
    Receipts no longer than the preview keep their first half.
    Non-string or empty receipts are stored as a placeholder.
    """
    if not isinstance(receipt, str) or not receipt:
        return 'missing_receipt'
    if len(receipt) <= preview_length:
        return receipt[:len(receipt) // 2] + '...'
    return receipt[:preview_length] + '...'


def to_utc(value: Any) -> Optional[datetime]:
    """Coerce Firestore timestamps to aware UTC datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    # google.protobuf Timestamp style values
    to_datetime = getattr(value, 'ToDatetime', None)
    if callable(to_datetime):
        return to_datetime().replace(tzinfo=timezone.utc)
    return None


def to_iso(value: Any) -> Optional[str]:
    """Format a Firestore timestamp as ISO-8601, or None."""
    converted = to_utc(value)
    return converted.isoformat() if converted else None


__all__ = [
    # Constants
    'PLATFORM_IOS',
    'PLATFORM_ANDROID',
    'SUPPORTED_PLATFORMS',
    'STATUS_VERIFIED',
    'STATUS_FAILED',
    'STATUS_ERROR',
    'DEFAULT_PRODUCT_CREDITS',
    'APPLE_STATUS_OK',
    'APPLE_STATUS_SANDBOX_RECEIPT',

    # Functions
    'redact_receipt',
    'to_utc',
    'to_iso',
]
