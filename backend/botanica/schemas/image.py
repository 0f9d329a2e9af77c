from pydantic import BaseModel, Field


class ImageUploadResponse(BaseModel):
    url: str = Field(description="Public URL to store in plants.image_url")
    path: str = Field(description="Object path inside the bucket")
    size: int = Field(description="Stored size in bytes, after resizing")
    size_label: str = Field(description="Human-readable stored size")
    original_size_label: str
    width: int
    height: int
