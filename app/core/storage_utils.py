# app/core/storage_utils.py
import logging
import uuid
from functools import lru_cache
from typing import Protocol

from supabase import Client

from app.core.config import get_settings
from app.core.errors import UploadFailed
from app.core.supabase_client import supabase_admin

logger = logging.getLogger(__name__)

# --- Image config ---

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class PhotoStorage(Protocol):
    """What the verification flow needs from a file store."""

    def upload(self, path: str, file_bytes: bytes, content_type: str) -> str: ...

    def delete_public_url(self, url: str) -> None: ...


class PhotoStore:
    """
    Profile photos in a Supabase Storage bucket.

    Every client error is reported as UploadFailed; the caller never sees
    the storage API's own message.
    """

    def __init__(self, client: Client, bucket: str):
        self.client = client
        self.bucket = bucket

    def upload(self, path: str, file_bytes: bytes, content_type: str) -> str:
        """
        Upload raw bytes and return the public URL.

        If a file already exists at this path, it will be overwritten
        thanks to the 'upsert' option.

        Args:
            path: Full object path inside the bucket.
                  Example: "users/<uuid4>.png"
            file_bytes: File content in bytes.
            content_type: MIME type stored with the object.

        Raises:
            UploadFailed: the storage API rejected the upload or was unreachable.
        """
        bucket = self.client.storage.from_(self.bucket)
        try:
            bucket.upload(
                path,
                file_bytes,
                {"content-type": content_type, "upsert": "true"},
            )
            return bucket.get_public_url(path)
        except Exception as exc:
            logger.warning("Photo upload to %s/%s failed: %s", self.bucket, path, exc)
            raise UploadFailed() from exc

    def delete(self, path: str) -> None:
        """Delete a file by its object path (relative to the bucket)."""
        self.client.storage.from_(self.bucket).remove([path])

    def extract_path_from_public_url(self, url: str) -> str | None:
        """
        Given a public URL, extract the object path relative to the bucket.

        Example:
            https://<proj>.supabase.co/storage/v1/object/public/avatars/users/u.png
            -> 'users/u.png'
        """
        marker = f"/storage/v1/object/public/{self.bucket}/"
        idx = url.find(marker)
        if idx == -1:
            return None
        return url[idx + len(marker) :]

    def delete_public_url(self, url: str) -> None:
        """
        Convenience helper: delete a file by its public URL.
        No-op if the URL does not belong to this bucket.
        """
        path = self.extract_path_from_public_url(url)
        if path:
            self.delete(path)


def generate_filename(ext: str) -> str:
    """
    Generate a random filename using UUID4.

    Args:
        ext: File extension without dot (e.g. "png", "jpg")

    Returns:
        A filename like "<uuid4>.png"
    """
    return f"{uuid.uuid4()}.{ext}"


@lru_cache
def get_photo_store() -> PhotoStore | None:
    """
    Process-wide photo store (override in tests).

    None when Supabase is not configured; registrations that carry a photo
    then fail with UploadFailed.
    """
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        logger.warning("Supabase storage is not configured; photo uploads are disabled")
        return None
    return PhotoStore(supabase_admin(), settings.STORAGE_BUCKET)
