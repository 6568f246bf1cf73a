import logging
import os
import secrets
import string
import time
from pathlib import Path
from typing import Iterable, Optional

from .errors import NotFoundError, UploadError

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/api/uploads/"

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


class UploadStore:
    """Stores uploaded problem images (and PDFs) on local disk.

    Files are never cleaned up; the directory grows until someone empties it.
    """

    def __init__(
        self,
        upload_dir: str,
        max_bytes: int = 10 * 1024 * 1024,
        allowed_types: Iterable[str] = (
            "image/jpeg",
            "image/png",
            "image/webp",
            "application/pdf",
        ),
    ):
        self.upload_dir = Path(upload_dir).resolve()
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.max_bytes = max_bytes
        self.allowed_types = set(allowed_types)

    def validate(self, content_type: Optional[str], size: int) -> None:
        """Reject anything outside the allow-list or over the size limit"""
        if content_type not in self.allowed_types:
            raise UploadError(
                "Invalid file type. Only JPG, PNG, WebP, and PDF files are allowed."
            )
        if size > self.max_bytes:
            raise UploadError(
                f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB."
            )

    def generate_filename(self, original_name: Optional[str]) -> str:
        extension = os.path.splitext(original_name or "")[1]
        suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
        return f"{int(time.time() * 1000)}-{suffix}{extension}"

    def save(
        self, original_name: Optional[str], content_type: Optional[str], data: bytes
    ) -> str:
        """Validate and write an upload, returning the stored filename"""
        self.validate(content_type, len(data))

        filename = self.generate_filename(original_name)
        try:
            (self.upload_dir / filename).write_bytes(data)
        except OSError as e:
            logger.exception(f"Failed to write upload {filename}")
            raise UploadError.io_failure(f"Failed to store upload: {e}") from e

        logger.info(f"Stored upload {filename} ({len(data)} bytes, {content_type})")
        return filename

    def url_for(self, filename: str) -> str:
        return f"{UPLOAD_URL_PREFIX}{filename}"

    def resolve(self, filename: str) -> Path:
        """Path of a stored upload. Raises NotFoundError if it is not there."""
        path = (self.upload_dir / filename).resolve()
        if path.parent != self.upload_dir or not path.is_file():
            raise NotFoundError("File not found")
        return path

    def resolve_url(self, url: str) -> Optional[Path]:
        """Path behind one of our own upload URLs, or None for any other URL"""
        if not url.startswith(UPLOAD_URL_PREFIX):
            return None
        return self.resolve(url[len(UPLOAD_URL_PREFIX):])
