"""Dependencies for storage module."""

from typing import Annotated

from fastapi import Depends, HTTPException, UploadFile, status

from blogapi.config.settings import Settings, get_settings
from blogapi.storage.service import LocalStorageService, StorageError


_storage_service: LocalStorageService | None = None


def get_storage_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> LocalStorageService:
    """Get storage service instance (singleton)."""
    global _storage_service  # noqa: PLW0603

    if _storage_service is None:
        _storage_service = LocalStorageService(settings)

    return _storage_service


StorageServiceDep = Annotated[LocalStorageService, Depends(get_storage_service)]


def handle_storage_error(error: StorageError) -> HTTPException:
    status_map = {
        "no_file": status.HTTP_400_BAD_REQUEST,
        "file_too_large": status.HTTP_413_CONTENT_TOO_LARGE,
        "invalid_content_type": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
        "validation_error": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )


async def store_upload(storage: LocalStorageService, file: UploadFile) -> str:
    """Read an uploaded file and store it, returning the public path."""
    content = await file.read()
    return await storage.save_image(
        content=content,
        content_type=file.content_type,
        filename=file.filename,
    )
