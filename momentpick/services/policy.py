import enum

from sqlalchemy.orm import Session

from momentpick.models.event import Event
from momentpick.models.photo import Photo
from momentpick.services import membership
from momentpick.services.exceptions import PermissionDeniedError


class Action(str, enum.Enum):
    VIEW_EVENT = "view_event"
    UPLOAD_PHOTO = "upload_photo"
    DELETE_EVENT = "delete_event"
    DELETE_PHOTO = "delete_photo"


DENIED_MESSAGES = {
    Action.VIEW_EVENT: "You do not have access to this event.",
    Action.UPLOAD_PHOTO: "You must join this event first.",
    Action.DELETE_EVENT: "Only the creator can delete this event.",
    Action.DELETE_PHOTO: "You can only delete your own photos.",
}


def is_allowed(
    db: Session,
    user_id: str,
    action: Action,
    event_id: str,
    *,
    event: Event | None = None,
    photo: Photo | None = None,
) -> bool:
    if action in (Action.VIEW_EVENT, Action.UPLOAD_PHOTO):
        return membership.is_member(db, event_id, user_id)

    if event is None:
        event = db.get(Event, event_id)
    is_creator = event is not None and event.creator_id == user_id

    if action == Action.DELETE_EVENT:
        return is_creator
    if action == Action.DELETE_PHOTO:
        return is_creator or (photo is not None and photo.uploader_id == user_id)
    return False


def authorize(
    db: Session,
    user_id: str,
    action: Action,
    event_id: str,
    *,
    event: Event | None = None,
    photo: Photo | None = None,
) -> None:
    if not is_allowed(db, user_id, action, event_id, event=event, photo=photo):
        raise PermissionDeniedError(DENIED_MESSAGES[action])
