import logging
import os
import posixpath
import uuid
from typing import Optional, Tuple

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class LocalStorageService:
    """
    Stores media under ``PUBLIC_ROOT/UPLOAD_FOLDER`` and addresses it by
    public URL (``/uploads/<name>``).
    """

    def public_root(self) -> str:
        return current_app.config["PUBLIC_ROOT"]

    def upload_folder(self) -> str:
        return current_app.config.get("UPLOAD_FOLDER", "uploads").strip("/")

    def allowed_file(self, filename: str) -> bool:
        allowed = current_app.config.get("MEDIA_ALLOWED_EXTENSIONS", set())
        return "." in filename and filename.rsplit(".", 1)[1].lower() in allowed

    def abs_path(self, url: str) -> str:
        relative = posixpath.normpath(url.lstrip("/"))
        if relative.startswith(".."):
            raise StorageError(f"Refusing path outside public root: {url}")
        return os.path.join(self.public_root(), *relative.split("/"))

    def relative_dir(self, url: str) -> str:
        return posixpath.dirname(url) or "/"

    def exists(self, url: Optional[str]) -> bool:
        return bool(url) and os.path.exists(self.abs_path(url))

    def save_upload(self, file: FileStorage) -> Tuple[str, str, int]:
        """Persist an upload under a unique name. Returns (url, abs_path, size)."""
        if not file or not file.filename:
            raise StorageError("No file provided")
        if not self.allowed_file(file.filename):
            raise StorageError("File type not allowed")

        filename = secure_filename(file.filename)
        ext = filename.rsplit(".", 1)[1].lower()
        unique_filename = f"{uuid.uuid4().hex}.{ext}"

        folder = os.path.join(self.public_root(), self.upload_folder())
        os.makedirs(folder, exist_ok=True)
        file_path = os.path.join(folder, unique_filename)
        file.save(file_path)

        size = os.path.getsize(file_path)
        max_size = current_app.config.get("MEDIA_MAX_FILE_SIZE")
        if max_size and size > max_size:
            os.remove(file_path)
            raise StorageError(f"File exceeds maximum size of {max_size} bytes")

        return f"/{self.upload_folder()}/{unique_filename}", file_path, size

    def delete(self, url: Optional[str]) -> bool:
        if not url:
            return False
        file_path = self.abs_path(url)
        if not os.path.exists(file_path):
            return False
        try:
            os.remove(file_path)
            return True
        except OSError as exc:
            logger.error("Failed to delete file %s: %s", file_path, exc)
            return False

    def rename(self, old_url: str, new_url: str) -> None:
        os.replace(self.abs_path(old_url), self.abs_path(new_url))


storage_service = LocalStorageService()
