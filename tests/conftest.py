"""
Pytest configuration and shared fixtures.

Firestore and Storage are replaced by the in-memory fakes in tests/fakes.py;
the Apple verifyReceipt endpoint is replaced by a mocked requests session.
"""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

# Set environment variables BEFORE importing function modules
os.environ.setdefault("APPLE_SHARED_SECRET", "test-shared-secret")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from fakes import USER_ID, FakeBucket, FakeFirestore  # noqa: E402
from utils.catalog import ProductCatalog  # noqa: E402
from utils.receipt_verifier import AppleReceiptVerifier, GooglePlayReceiptVerifier  # noqa: E402


@pytest.fixture
def db() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def bucket() -> FakeBucket:
    return FakeBucket()


@pytest.fixture
def catalog() -> ProductCatalog:
    return ProductCatalog({
        "pkg.credits10": 10,
        "pkg.credits5": 5,
        "pkg.bundle": 35,
    })


@pytest.fixture
def apple_session() -> MagicMock:
    """requests.Session stand-in; tests set post.return_value / side_effect."""
    return MagicMock()


@pytest.fixture
def verifiers(apple_session: MagicMock) -> dict:
    return {
        "ios": AppleReceiptVerifier(
            shared_secret="test-shared-secret",
            production_url="https://buy.example.test/verifyReceipt",
            sandbox_url="https://sandbox.example.test/verifyReceipt",
            timeout=5,
            local_environments=("Xcode",),
            session=apple_session,
        ),
        "android": GooglePlayReceiptVerifier(min_length=10),
    }


@pytest.fixture
def photo_factory(db: FakeFirestore):
    """Seed photos for a user with createdAt spaced one hour apart."""
    base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def _create(photo_id: str, user_id: str = USER_ID, hours: int = 0, **fields) -> dict:
        data = {
            "userId": user_id,
            "originalUrl": f"https://firebasestorage.googleapis.com/v0/b/app.appspot.com/o/"
                           f"photos%2F{user_id}%2F{photo_id}.jpg?alt=media&token=abc",
            "status": "done",
            "theme": "Superhero",
            "createdAt": base + timedelta(hours=hours),
        }
        data.update(fields)
        db.seed("photos", photo_id, data)
        return data

    return _create
