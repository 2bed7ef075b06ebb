from datetime import datetime

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from momentpick.db.base import Base
from momentpick.models.common import TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin, as_utc, utcnow


class Event(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "events"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    creator_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    invite_code: Mapped[str] = mapped_column(String(16), unique=True, index=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)

    creator = relationship("User", back_populates="created_events")
    memberships = relationship("Membership", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)
    photos = relationship("Photo", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= as_utc(self.expires_at)
