"""Pydantic schemas for storage operations."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ImageUploadResponse(BaseModel):
    """Public path of a stored image."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    image_url: str = Field(..., description="Path under the public upload prefix")
