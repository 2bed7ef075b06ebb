from momentpick.schemas.auth import LoginRequest, MeResponse, TokenResponse, UserCreate, UserRead
from momentpick.schemas.event import (
    EventCreate,
    EventDetailResponse,
    EventJoin,
    EventListResponse,
    EventRead,
    EventResponse,
    EventSummary,
)
from momentpick.schemas.photo import PhotoListResponse, PhotoRead, PhotoUploadResponse

__all__ = [
    "UserCreate",
    "UserRead",
    "LoginRequest",
    "TokenResponse",
    "MeResponse",
    "EventCreate",
    "EventJoin",
    "EventRead",
    "EventSummary",
    "EventResponse",
    "EventListResponse",
    "EventDetailResponse",
    "PhotoRead",
    "PhotoListResponse",
    "PhotoUploadResponse",
]
