"""Local disk storage for uploaded post images.

Handles image uploads with:
- Size limit and declared Content-Type checks
- Magic bytes validation of the content
- Collision-resistant file names served under the public upload prefix
"""

import asyncio
import re
import secrets
import time
from pathlib import Path

import structlog

from blogapi.config.settings import Settings
from blogapi.utils.magic_bytes import check_image_content


logger = structlog.get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
MAX_ORIGINAL_NAME_LENGTH = 100


class StorageError(Exception):
    """Base error for storage operations."""

    def __init__(self, message: str, code: str = "storage_error") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class NoFileUploadedError(StorageError):
    def __init__(self, message: str = "No file uploaded") -> None:
        super().__init__(message, "no_file")


class StorageUploadError(StorageError):
    """Error while writing the file."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "upload_error")


class StorageValidationError(StorageError):
    """Content does not look like an allowed image."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "validation_error")


class FileTooLargeError(StorageError):
    """Error when file exceeds size limit."""

    def __init__(self, size: int, max_size: int) -> None:
        message = (
            f"File size ({size / 1024 / 1024:.2f} MB) exceeds "
            f"maximum allowed ({max_size / 1024 / 1024:.2f} MB)"
        )
        super().__init__(message, "file_too_large")


class InvalidContentTypeError(StorageError):
    """Error when content type is not allowed."""

    def __init__(self, content_type: str, allowed: list[str]) -> None:
        message = f"Content type '{content_type}' is not allowed. Allowed: {', '.join(allowed)}"
        super().__init__(message, "invalid_content_type")


def sanitize_filename(filename: str | None) -> str:
    """Reduce a client-supplied name to a safe basename.

    >>> sanitize_filename("../My Photo (1).png")
    'My_Photo_1_.png'
    """
    name = Path(filename or "").name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name[-MAX_ORIGINAL_NAME_LENGTH:] or "image"


class LocalStorageService:
    """Stores uploaded images in the configured upload directory."""

    def __init__(self, settings: Settings, upload_dir: Path | None = None) -> None:
        self.settings = settings
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.url_prefix = settings.upload_url_prefix.rstrip("/")

    @property
    def max_file_size(self) -> int:
        """Maximum file size in bytes."""
        return self.settings.upload_max_file_size_mb * 1024 * 1024

    @property
    def allowed_types(self) -> list[str]:
        return self.settings.upload_allowed_image_types

    def build_filename(self, original_filename: str | None) -> str:
        """``<epoch millis>-<random hex>-<sanitized original name>``."""
        millis = int(time.time() * 1000)
        return f"{millis}-{secrets.token_hex(6)}-{sanitize_filename(original_filename)}"

    def public_url(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def validate_image(self, content: bytes, content_type: str | None) -> None:
        """Check size, declared type and magic bytes.

        Raises:
            FileTooLargeError: If content exceeds the size limit.
            InvalidContentTypeError: If the declared type is not allowed.
            StorageValidationError: If the content is not an allowed image.
        """
        file_size = len(content)
        if file_size > self.max_file_size:
            raise FileTooLargeError(file_size, self.max_file_size)

        declared = (content_type or "").split(";")[0].strip().lower()
        if declared not in self.allowed_types:
            raise InvalidContentTypeError(declared or "unknown", self.allowed_types)

        check = check_image_content(
            content, declared, allowed_types=frozenset(self.allowed_types)
        )
        if not check.valid:
            logger.warning(
                "magic_bytes_validation_failed",
                declared_type=declared,
                detected_type=check.detected_type,
                error=check.error,
            )
            raise StorageValidationError(check.error or "Invalid file content")

    async def save_image(
        self,
        content: bytes,
        content_type: str | None,
        filename: str | None = None,
    ) -> str:
        """Validate and store an image, returning its public path.

        Raises:
            StorageError: On validation or write failure.
        """
        self.validate_image(content, content_type)

        stored_name = self.build_filename(filename)
        target = self.upload_dir / stored_name
        try:
            await asyncio.to_thread(self._write, target, content)
        except OSError as e:
            logger.exception("upload_failed", path=str(target), error=str(e))
            raise StorageUploadError(f"Failed to store file: {e}") from e

        logger.info(
            "image_uploaded",
            filename=stored_name,
            content_type=content_type,
            file_size=len(content),
        )
        return self.public_url(stored_name)

    @staticmethod
    def _write(target: Path, content: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
