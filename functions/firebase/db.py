# functions/firebase/db.py
"""
Centralized Firestore and Storage clients with lazy initialization.
Import this instead of firebase_admin.firestore / storage in route files.
"""
import firebase_admin
from firebase_admin import firestore, credentials, storage

from config import config

_db_client = None
_bucket = None


def _ensure_firebase_initialized():
    """Ensure Firebase is initialized (lazy initialization)."""
    if not firebase_admin._apps:
        cred = credentials.ApplicationDefault()
        options = {"storageBucket": config.STORAGE_BUCKET} if config.STORAGE_BUCKET else None
        firebase_admin.initialize_app(cred, options)


def get_db():
    """
    Get Firestore client with lazy initialization.
    Safe to call during module import and at runtime.

    Returns:
        Firestore client instance
    """
    global _db_client
    if _db_client is None:
        _ensure_firebase_initialized()
        _db_client = firestore.client()
    return _db_client


def get_bucket():
    """
    Get the default Cloud Storage bucket with lazy initialization.

    Returns:
        google.cloud.storage.Bucket instance
    """
    global _bucket
    if _bucket is None:
        _ensure_firebase_initialized()
        _bucket = storage.bucket(config.STORAGE_BUCKET or None)
    return _bucket
