from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from momentpick.core.security import Identity
from momentpick.db.session import get_db
from momentpick.routers.deps import get_identity
from momentpick.schemas.event import (
    EventCreate,
    EventDetailResponse,
    EventJoin,
    EventListResponse,
    EventRead,
    EventResponse,
)
from momentpick.services import events as event_service
from momentpick.services.storage import BlobStore, get_blob_store

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> EventResponse:
    event = event_service.create_event(db, identity.id, payload.name, payload.password, payload.description)
    return EventResponse(message="Event created successfully!", event=EventRead.model_validate(event))


@router.post("/join", response_model=EventResponse)
def join_event(
    payload: EventJoin,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> EventResponse:
    event, created = event_service.join_event(db, identity.id, payload.invite_code, payload.password)
    message = "Successfully joined the event!" if created else "You have already joined this event."
    return EventResponse(message=message, event=EventRead.model_validate(event))


@router.get("", response_model=EventListResponse)
def list_events(db: Session = Depends(get_db), identity: Identity = Depends(get_identity)) -> EventListResponse:
    return EventListResponse.model_validate({"events": event_service.list_events_for_user(db, identity.id)})


@router.get("/{event_id}", response_model=EventDetailResponse)
def get_event(
    event_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
) -> EventDetailResponse:
    return EventDetailResponse.model_validate(event_service.get_event_detail(db, identity.id, event_id))


@router.delete("/{event_id}")
def delete_event(
    event_id: str,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    identity: Identity = Depends(get_identity),
) -> dict:
    event_service.delete_event(db, store, identity.id, event_id)
    return {"message": "Event deleted successfully."}
