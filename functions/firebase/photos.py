# functions/firebase/photos.py
"""
Photo gallery storage: owner-scoped listing and cascading deletion.
"""
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from google.api_core.exceptions import GoogleAPICallError
from google.cloud.firestore import Query

from config import config
from firebase.db import get_bucket, get_db
from utils import to_iso, to_utc
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Download URLs look like:
# https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{encoded path}?alt=media&token={token}
_STORAGE_PATH_PATTERN = re.compile(r"/o/(.+)$")


class PhotoError(Exception):
    """Base class for photo lookup failures."""


class PhotoNotFoundError(PhotoError):
    pass


class PhotoPermissionError(PhotoError):
    pass


def extract_storage_path(download_url: Any) -> Optional[str]:
    """
    Extract the storage object path from a Firebase Storage download URL.

    The path is the URL-decoded segment after ``/o/`` in the URL path (the
    query string is not part of it). Returns None for anything that does not
    have that shape; never raises.
    """
    if not isinstance(download_url, str) or not download_url:
        return None
    try:
        parsed = urlparse(download_url)
        if not parsed.scheme or not parsed.netloc:
            return None
        match = _STORAGE_PATH_PATTERN.search(parsed.path)
        if not match:
            return None
        path = unquote(match.group(1))
        return path or None
    except (ValueError, TypeError) as e:
        logger.error(f"Error extracting storage path: {str(e)}")
        return None


_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _serialize_photo(doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc_id,
        "originalUrl": data.get("originalUrl"),
        "resultUrl": data.get("resultUrl") or data.get("originalUrl"),
        "theme": data.get("theme") or "Unknown Theme",
        "status": data.get("status") or "processing",
        "createdAt": to_iso(data.get("createdAt")),
        "analysis": data.get("analysis"),
        "error": data.get("error"),
    }


def _newest_first(docs) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Order (userId ==) query results the way the indexed query does.

    Documents without ``createdAt`` are dropped since ordered queries never
    return them. Ties on ``createdAt`` are broken by document id, descending.
    """
    rows = []
    for doc in docs:
        data = doc.to_dict() or {}
        if data.get("createdAt") is None:
            continue
        rows.append((doc.id, data))
    rows.sort(key=lambda row: (to_utc(row[1]["createdAt"]) or _OLDEST, row[0]), reverse=True)
    return rows


def list_user_photos(uid: str, limit: Optional[int] = None, db=None) -> List[Dict[str, Any]]:
    """
    List a user's photos, newest first.

    Uses the indexed (userId, createdAt desc) query. If that query cannot run,
    typically because the composite index is still building, falls back to the
    owner filter alone and orders in memory so callers see the same result.

    Returns:
        Serialized photos, at most ``limit``
    """
    db = db if db is not None else get_db()
    limit = limit or config.PHOTO_QUERY_LIMIT
    photos_ref = db.collection(config.PHOTOS_COLLECTION)

    try:
        docs = list(
            photos_ref
            .where("userId", "==", uid)
            .order_by("createdAt", direction=Query.DESCENDING)
            .limit(limit)
            .stream()
        )
        rows = [(doc.id, doc.to_dict() or {}) for doc in docs]
    except GoogleAPICallError as e:
        logger.warning(f"Index not ready, falling back to unordered query: {str(e)}")
        rows = _newest_first(photos_ref.where("userId", "==", uid).stream())[:limit]

    return [_serialize_photo(doc_id, data) for doc_id, data in rows]


def _delete_blob(bucket, path: str) -> None:
    bucket.blob(path).delete()


def delete_storage_objects(paths: List[str], bucket=None) -> Dict[str, bool]:
    """
    Delete storage objects concurrently, waiting for every outcome.

    Failures are logged and reported as False; they never raise.

    Returns:
        Mapping of path -> deleted
    """
    if not paths:
        return {}

    bucket = bucket if bucket is not None else get_bucket()
    outcomes: Dict[str, bool] = {}

    with ThreadPoolExecutor(max_workers=config.STORAGE_DELETE_WORKERS) as executor:
        futures = {executor.submit(_delete_blob, bucket, path): path for path in paths}

        for future in as_completed(futures):
            path = futures[future]
            try:
                future.result()
                outcomes[path] = True
                logger.info(f"✓ Deleted storage object: {path}")
            except Exception as e:
                outcomes[path] = False
                logger.warning(f"⚠️ Failed to delete storage object {path}: {str(e)}")

    return outcomes


def delete_user_photo(uid: str, photo_id: str, db=None, bucket=None) -> Dict[str, bool]:
    """
    Delete a photo owned by ``uid`` together with its storage objects.

    Raises:
        PhotoNotFoundError: photo does not exist
        PhotoPermissionError: photo belongs to another user

    Returns:
        Storage deletion outcomes (path -> deleted)
    """
    db = db if db is not None else get_db()
    photo_ref = db.collection(config.PHOTOS_COLLECTION).document(photo_id)
    snapshot = photo_ref.get()

    if not snapshot.exists:
        raise PhotoNotFoundError("Photo not found")

    data = snapshot.to_dict()
    if not data:
        raise PhotoNotFoundError("Photo data not found")

    if data.get("userId") != uid:
        raise PhotoPermissionError("You can only delete your own photos")

    logger.info(f"Deleting photo {photo_id} for user {uid}")

    paths = []
    original_url = data.get("originalUrl")
    result_url = data.get("resultUrl")

    for label, url in (("original", original_url), ("result", result_url)):
        if not url or (label == "result" and url == original_url):
            continue
        path = extract_storage_path(url)
        if path:
            if path not in paths:
                paths.append(path)
        else:
            logger.warning(f"⚠️ Could not extract {label} image path for photo {photo_id}")

    outcomes = delete_storage_objects(paths, bucket=bucket)

    photo_ref.delete()
    logger.info(f"✓ Successfully deleted photo {photo_id}")
    return outcomes
