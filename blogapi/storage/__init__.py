"""Image upload storage."""

from .service import (
    FileTooLargeError,
    InvalidContentTypeError,
    LocalStorageService,
    NoFileUploadedError,
    StorageError,
    StorageUploadError,
    StorageValidationError,
)


__all__ = [
    "FileTooLargeError",
    "InvalidContentTypeError",
    "LocalStorageService",
    "NoFileUploadedError",
    "StorageError",
    "StorageUploadError",
    "StorageValidationError",
]
