from datetime import datetime

from pydantic import BaseModel, Field

from momentpick.schemas.photo import PhotoRead


class EventCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=5000)


class EventJoin(BaseModel):
    invite_code: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=1, max_length=128)


class EventRead(BaseModel):
    id: str
    name: str
    description: str
    creator_id: str
    invite_code: str
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class EventSummary(EventRead):
    photo_count: int
    participant_count: int
    creator_name: str
    is_creator: bool
    is_expired: bool


class EventDetailRead(EventRead):
    creator_name: str
    is_creator: bool
    is_expired: bool


class ParticipantRead(BaseModel):
    id: str
    name: str
    email: str


class EventPhotoRead(PhotoRead):
    uploader_name: str


class EventResponse(BaseModel):
    message: str
    event: EventRead


class EventListResponse(BaseModel):
    events: list[EventSummary]


class EventDetailResponse(BaseModel):
    event: EventDetailRead
    participants: list[ParticipantRead]
    photos: list[EventPhotoRead]
