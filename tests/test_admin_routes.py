"""
Tests for the self-service callables: credits, profile, gallery, push token.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from firebase_functions import https_fn

from fakes import OTHER_USER_ID, USER_ID, FakeBucket
from routes.admin import (
    add_credits_for_caller,
    delete_photo_for_caller,
    get_info_for_caller,
    list_photos_for_caller,
    update_token_for_caller,
)

CALLERS = [
    (add_credits_for_caller, {"userId": USER_ID, "credits": 5}),
    (get_info_for_caller, {"userId": USER_ID}),
    (list_photos_for_caller, {"userId": USER_ID}),
    (delete_photo_for_caller, {"photoId": "photo-1"}),
    (update_token_for_caller, {"token": "fcm-token"}),
]


@pytest.mark.parametrize("handler,payload", CALLERS)
def test_every_callable_requires_authentication(db, handler, payload):
    with pytest.raises(https_fn.HttpsError) as exc_info:
        handler(None, payload, db=db)

    assert exc_info.value.code == https_fn.FunctionsErrorCode.UNAUTHENTICATED


@pytest.mark.parametrize("handler", [add_credits_for_caller, get_info_for_caller, list_photos_for_caller])
def test_self_only_callables_reject_other_users(db, handler):
    payload = {"userId": OTHER_USER_ID, "credits": 5}

    with pytest.raises(https_fn.HttpsError) as exc_info:
        handler(USER_ID, payload, db=db)

    assert exc_info.value.code == https_fn.FunctionsErrorCode.PERMISSION_DENIED
    assert db.documents("users") == []


@pytest.mark.parametrize("handler,payload", [
    (add_credits_for_caller, {"userId": OTHER_USER_ID}),
    (add_credits_for_caller, {"userId": OTHER_USER_ID, "credits": "lots"}),
    (add_credits_for_caller, {"userId": OTHER_USER_ID, "credits": -1}),
    (get_info_for_caller, {"userId": OTHER_USER_ID, "unexpected": True}),
    (list_photos_for_caller, {"userId": OTHER_USER_ID}),
])
def test_ownership_is_checked_before_payload_validation(db, handler, payload):
    with pytest.raises(https_fn.HttpsError) as exc_info:
        handler(USER_ID, payload, db=db)

    assert exc_info.value.code == https_fn.FunctionsErrorCode.PERMISSION_DENIED
    assert db.documents("users") == []


@pytest.mark.parametrize("handler", [add_credits_for_caller, get_info_for_caller, list_photos_for_caller])
def test_missing_user_id_is_invalid_argument(db, handler):
    with pytest.raises(https_fn.HttpsError) as exc_info:
        handler(USER_ID, {"credits": 5}, db=db)

    assert exc_info.value.code == https_fn.FunctionsErrorCode.INVALID_ARGUMENT


class TestAddCredits:
    def test_creates_record_when_absent(self, db):
        result = add_credits_for_caller(USER_ID, {"userId": USER_ID, "credits": 20}, db=db)

        assert result == {
            "success": True,
            "message": "Created new user with 20 credits",
            "totalCredits": 20,
            "created": True,
        }
        user = db.collection("users").document(USER_ID).get().to_dict()
        assert user["credits"] == 20
        assert user["premium"] is False
        assert user["createdAt"] is not None

    def test_increments_existing_record(self, db):
        db.seed("users", USER_ID, {"credits": 7, "premium": True})

        result = add_credits_for_caller(USER_ID, {"userId": USER_ID, "credits": 3}, db=db)

        assert result["totalCredits"] == 10
        assert result["created"] is False
        assert result["message"] == "Added 3 credits. New total: 10"
        user = db.collection("users").document(USER_ID).get().to_dict()
        assert user["credits"] == 10
        assert user["premium"] is True

    @pytest.mark.parametrize("payload", [
        {"userId": USER_ID},
        {"userId": USER_ID, "credits": "5"},
        {"userId": USER_ID, "credits": 0},
        {"userId": USER_ID, "credits": -3},
        {"userId": USER_ID, "credits": True},
        {"credits": 5},
    ])
    def test_invalid_arguments(self, db, payload):
        with pytest.raises(https_fn.HttpsError) as exc_info:
            add_credits_for_caller(USER_ID, payload, db=db)

        assert exc_info.value.code == https_fn.FunctionsErrorCode.INVALID_ARGUMENT

    def test_store_failure_is_internal(self, db):
        with patch("routes.admin.add_credits", side_effect=RuntimeError("unavailable")):
            with pytest.raises(https_fn.HttpsError) as exc_info:
                add_credits_for_caller(USER_ID, {"userId": USER_ID, "credits": 5}, db=db)

        assert exc_info.value.code == https_fn.FunctionsErrorCode.INTERNAL
        assert exc_info.value.message == "Failed to add credits"


class TestGetUserInfo:
    def test_missing_user_is_not_an_error(self, db):
        assert get_info_for_caller(USER_ID, {"userId": USER_ID}, db=db) == {
            "exists": False,
            "message": "User not found",
        }

    def test_returns_profile(self, db):
        created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        db.seed("users", USER_ID, {"credits": 42, "premium": True, "createdAt": created})

        result = get_info_for_caller(USER_ID, {"userId": USER_ID}, db=db)

        assert result == {
            "exists": True,
            "userData": {
                "credits": 42,
                "premium": True,
                "createdAt": "2024-01-02T03:04:05+00:00",
                "lastUpdated": None,
                "lastPurchase": None,
            },
        }

    def test_missing_user_id_is_invalid(self, db):
        with pytest.raises(https_fn.HttpsError) as exc_info:
            get_info_for_caller(USER_ID, {}, db=db)

        assert exc_info.value.code == https_fn.FunctionsErrorCode.INVALID_ARGUMENT


class TestGetUserPhotos:
    def test_returns_own_photos_newest_first(self, db, photo_factory):
        photo_factory("old", hours=0)
        photo_factory("new", hours=2)
        photo_factory("middle", hours=1)
        photo_factory("foreign", user_id=OTHER_USER_ID, hours=5)

        result = list_photos_for_caller(USER_ID, {"userId": USER_ID}, db=db)

        assert result["total"] == 3
        assert [photo["id"] for photo in result["photos"]] == ["new", "middle", "old"]

    def test_query_failure_is_internal(self):
        db = MagicMock()
        db.collection.side_effect = RuntimeError("permission denied on project")

        with pytest.raises(https_fn.HttpsError) as exc_info:
            list_photos_for_caller(USER_ID, {"userId": USER_ID}, db=db)

        assert exc_info.value.code == https_fn.FunctionsErrorCode.INTERNAL


class TestDeleteUserPhoto:
    def test_owner_deletes_record_and_objects(self, db, photo_factory):
        photo_factory("photo-1", resultUrl="https://firebasestorage.googleapis.com/v0/b/app.appspot.com/o/"
                                           "results%2Fphoto-1.png?alt=media&token=def")
        bucket = FakeBucket(objects={f"photos/{USER_ID}/photo-1.jpg", "results/photo-1.png"})

        result = delete_photo_for_caller(USER_ID, {"photoId": "photo-1"}, db=db, bucket=bucket)

        assert result == {"success": True, "message": "Photo deleted successfully"}
        assert db.documents("photos") == []
        assert bucket.objects == set()

    def test_missing_photo_is_not_found(self, db, bucket):
        with pytest.raises(https_fn.HttpsError) as exc_info:
            delete_photo_for_caller(USER_ID, {"photoId": "nope"}, db=db, bucket=bucket)

        assert exc_info.value.code == https_fn.FunctionsErrorCode.NOT_FOUND

    def test_non_owner_is_denied_and_nothing_is_deleted(self, db, photo_factory):
        photo_factory("photo-1", user_id=OTHER_USER_ID)
        bucket = FakeBucket(objects={f"photos/{OTHER_USER_ID}/photo-1.jpg"})

        with pytest.raises(https_fn.HttpsError) as exc_info:
            delete_photo_for_caller(USER_ID, {"photoId": "photo-1"}, db=db, bucket=bucket)

        assert exc_info.value.code == https_fn.FunctionsErrorCode.PERMISSION_DENIED
        assert len(db.documents("photos")) == 1
        assert bucket.objects == {f"photos/{OTHER_USER_ID}/photo-1.jpg"}
        assert bucket.delete_calls == []

    def test_storage_failures_do_not_block_record_deletion(self, db, photo_factory):
        photo_factory("photo-1", resultUrl="https://firebasestorage.googleapis.com/v0/b/app.appspot.com/o/"
                                           "results%2Fphoto-1.png?alt=media")
        bucket = FakeBucket(objects=set(), forbidden={"results/photo-1.png"})

        result = delete_photo_for_caller(USER_ID, {"photoId": "photo-1"}, db=db, bucket=bucket)

        assert result["success"] is True
        assert db.documents("photos") == []
        assert sorted(bucket.delete_calls) == [f"photos/{USER_ID}/photo-1.jpg", "results/photo-1.png"]

    def test_missing_photo_id_is_invalid(self, db, bucket):
        with pytest.raises(https_fn.HttpsError) as exc_info:
            delete_photo_for_caller(USER_ID, {}, db=db, bucket=bucket)

        assert exc_info.value.code == https_fn.FunctionsErrorCode.INVALID_ARGUMENT


class TestUpdateFcmToken:
    def test_stores_token_on_caller(self, db):
        db.seed("users", USER_ID, {"credits": 3})

        assert update_token_for_caller(USER_ID, {"token": "fcm-token"}, db=db) == {"success": True}

        user = db.collection("users").document(USER_ID).get().to_dict()
        assert user["fcmToken"] == "fcm-token"
        assert user["credits"] == 3
        assert user["tokenUpdatedAt"] is not None

    def test_empty_token_is_invalid(self, db):
        with pytest.raises(https_fn.HttpsError) as exc_info:
            update_token_for_caller(USER_ID, {"token": ""}, db=db)

        assert exc_info.value.code == https_fn.FunctionsErrorCode.INVALID_ARGUMENT
