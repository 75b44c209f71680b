# functions/main.py
"""
Main entry point for Firebase Cloud Functions.
Exports all function handlers for deployment.
"""

import logging
import sys
from dotenv import load_dotenv

# Load environment variables before config is read
load_dotenv()

# Configure logging FIRST before any other imports
from config import config
from utils.logging_config import setup_cloud_logging, get_logger
setup_cloud_logging(level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))

logger = get_logger(__name__)

logger.info("=" * 80)
logger.info("FIREBASE CLOUD FUNCTIONS INITIALIZING")
logger.info("=" * 80)

config.validate()
config.log_config()

try:
    logger.info("Importing function handlers...")

    from routes.purchases import verify_purchase, handle_subscription_update
    from routes.admin import (
        add_credits_to_user,
        get_user_info,
        get_user_photos,
        delete_user_photo,
        update_fcm_token,
    )

    logger.info("✅ All modules loaded successfully")

except Exception as e:
    logger.error(f"❌ Failed to import modules: {str(e)}", exc_info=True)
    raise

# Export all functions for Firebase deployment.
# listAllUsers was decommissioned and is intentionally not exported.
__all__ = [
    'verify_purchase',
    'handle_subscription_update',
    'add_credits_to_user',
    'get_user_info',
    'get_user_photos',
    'delete_user_photo',
    'update_fcm_token',
]

logger.info("🎉 Firebase Cloud Functions ready")
sys.stdout.flush()
