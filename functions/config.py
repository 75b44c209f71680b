# functions/config.py
"""
Centralized configuration management with validation.
All environment variables and constants are defined here.
"""
import os
import logging

logger = logging.getLogger(__name__)


class Config:
    """Application configuration with validation"""

    def __init__(self):
        # Apple receipt verification
        self.APPLE_SHARED_SECRET: str = os.getenv("APPLE_SHARED_SECRET", "")
        self.APPLE_PRODUCTION_URL: str = os.getenv(
            "APPLE_PRODUCTION_URL", "https://buy.itunes.apple.com/verifyReceipt"
        )
        self.APPLE_SANDBOX_URL: str = os.getenv(
            "APPLE_SANDBOX_URL", "https://sandbox.itunes.apple.com/verifyReceipt"
        )
        self.APPLE_VERIFY_TIMEOUT: float = float(os.getenv("APPLE_VERIFY_TIMEOUT", "30"))
        self.LOCAL_RECEIPT_ENVIRONMENTS: tuple = tuple(
            env.strip()
            for env in os.getenv("LOCAL_RECEIPT_ENVIRONMENTS", "Xcode").split(",")
            if env.strip()
        )

        # Google Play (placeholder verification)
        self.ANDROID_MIN_RECEIPT_LENGTH: int = 10

        # Storage
        self.STORAGE_BUCKET: str = os.getenv("STORAGE_BUCKET", "")
        self.STORAGE_DELETE_WORKERS: int = 2

        # Firestore collections
        self.USERS_COLLECTION: str = "users"
        self.PURCHASES_COLLECTION: str = "purchases"
        self.PHOTOS_COLLECTION: str = "photos"

        # Limits
        self.PHOTO_QUERY_LIMIT: int = 50
        self.RECEIPT_PREVIEW_LENGTH: int = 50

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def validate(self) -> None:
        """Validate configuration at startup"""
        errors = []

        if self.APPLE_VERIFY_TIMEOUT <= 0:
            errors.append("APPLE_VERIFY_TIMEOUT must be positive")

        if not self.APPLE_PRODUCTION_URL or not self.APPLE_SANDBOX_URL:
            errors.append("Apple verification URLs must not be empty")

        if logging.getLevelName(self.LOG_LEVEL.upper()) not in (
            logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL
        ):
            errors.append(f"LOG_LEVEL '{self.LOG_LEVEL}' is not a valid level")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            logger.error(error_msg)
            raise ValueError(error_msg)

        if not self.APPLE_SHARED_SECRET:
            logger.warning("APPLE_SHARED_SECRET not set - auto-renewable receipts will not verify")

        logger.info("Configuration validation passed")

    def log_config(self) -> None:
        """Log non-sensitive configuration for debugging"""
        logger.info("=== Configuration ===")
        logger.info(f"Apple production URL: {self.APPLE_PRODUCTION_URL}")
        logger.info(f"Apple sandbox URL: {self.APPLE_SANDBOX_URL}")
        logger.info(f"Apple verify timeout: {self.APPLE_VERIFY_TIMEOUT}s")
        logger.info(f"Local receipt environments: {', '.join(self.LOCAL_RECEIPT_ENVIRONMENTS)}")
        logger.info(f"Storage bucket: {self.STORAGE_BUCKET or '(default)'}")
        logger.info(f"Log level: {self.LOG_LEVEL}")
        logger.info("=" * 50)


# Global configuration instance
config = Config()
