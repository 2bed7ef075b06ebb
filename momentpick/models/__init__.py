from momentpick.models.event import Event
from momentpick.models.membership import Membership
from momentpick.models.photo import Photo
from momentpick.models.user import User

__all__ = ["User", "Event", "Membership", "Photo"]
