# sellz_auth/storage.py
import logging
import os
import re
import shutil
import time
import uuid

from fastapi import Depends, UploadFile

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def _allowed(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def is_image(upload: UploadFile) -> bool:
    content_type = upload.content_type or ""
    return content_type.startswith("image/") or _allowed(upload.filename or "")


def image_extension(upload: UploadFile) -> str:
    """Pick the file extension from ALLOWED_EXTENSIONS, never from raw client input."""
    content_type = (upload.content_type or "").lower()
    if content_type.startswith("image/"):
        subtype = content_type.split("/", 1)[1]
        if subtype in ALLOWED_EXTENSIONS:
            return subtype
    if _allowed(upload.filename or ""):
        return upload.filename.rsplit(".", 1)[1].lower()
    return "img"


def save_temp_upload(upload: UploadFile, tmp_dir: str, owner: str) -> str:
    """Write an uploaded file to the temp dir as ``user-<owner>-<ms>-<rand>.<ext>``."""
    os.makedirs(tmp_dir, exist_ok=True)
    safe_owner = _UNSAFE_CHARS.sub("-", owner).strip("-")[:40] or "anon"
    filename = (
        f"user-{safe_owner}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
        f".{image_extension(upload)}"
    )
    path = os.path.join(tmp_dir, filename)
    with open(path, "wb") as f:
        shutil.copyfileobj(upload.file, f)
    return path


def delete_file(path: str | None) -> None:
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


class LocalImageStore:
    """Keeps uploaded images under ``media_dir`` and serves them from ``media_url``."""

    def __init__(self, media_dir: str, media_url: str = "/media"):
        self.media_dir = media_dir
        self.media_url = media_url.rstrip("/")

    def upload_image(self, local_path: str) -> str:
        os.makedirs(self.media_dir, exist_ok=True)
        ext = os.path.splitext(local_path)[1].lower()
        filename = f"{uuid.uuid4().hex}{ext}"
        shutil.copyfile(local_path, os.path.join(self.media_dir, filename))
        logger.info("Stored image %s", filename)
        return f"{self.media_url}/{filename}"

    def delete_image(self, url: str | None) -> None:
        """Remove a previously stored image; URLs outside ``media_url`` are left alone."""
        if not url or not url.startswith(f"{self.media_url}/"):
            return
        filename = os.path.basename(url)
        if filename:
            delete_file(os.path.join(self.media_dir, filename))
            logger.info("Deleted image %s", filename)

    def delete_local(self, local_path: str | None) -> None:
        delete_file(local_path)


def get_image_store(settings: Settings = Depends(get_settings)) -> LocalImageStore:
    return LocalImageStore(settings.MEDIA_DIR, settings.MEDIA_URL)
