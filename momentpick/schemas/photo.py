from datetime import datetime

from pydantic import BaseModel


class PhotoRead(BaseModel):
    id: str
    event_id: str
    uploader_id: str
    file_name: str
    storage_path: str
    url: str
    size: int
    mime_type: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PhotoUploadResponse(BaseModel):
    message: str
    uploaded: int
    photos: list[PhotoRead]


class PhotoListResponse(BaseModel):
    photos: list[PhotoRead]
