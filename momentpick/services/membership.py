from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from momentpick.models.membership import Membership
from momentpick.models.user import User


def is_member(db: Session, event_id: str, user_id: str) -> bool:
    found = db.scalar(
        select(Membership.id).where(Membership.event_id == event_id, Membership.user_id == user_id).limit(1)
    )
    return found is not None


def get(db: Session, event_id: str, user_id: str) -> Membership | None:
    return db.scalar(select(Membership).where(Membership.event_id == event_id, Membership.user_id == user_id))


def add(db: Session, event_id: str, user_id: str) -> tuple[Membership, bool]:
    """Enroll ``user_id`` in ``event_id`` unless already enrolled.

    Returns the membership and whether it was created. The caller commits.
    """
    existing = get(db, event_id, user_id)
    if existing:
        return existing, False
    membership = Membership(event_id=event_id, user_id=user_id)
    db.add(membership)
    db.flush()
    return membership, True


def count_for(db: Session, event_id: str) -> int:
    return int(db.scalar(select(func.count()).select_from(Membership).where(Membership.event_id == event_id)) or 0)


def counts_for(db: Session, event_ids: Iterable[str]) -> dict[str, int]:
    ids = list(event_ids)
    if not ids:
        return {}
    rows = db.execute(
        select(Membership.event_id, func.count()).where(Membership.event_id.in_(ids)).group_by(Membership.event_id)
    ).all()
    return {event_id: int(count) for event_id, count in rows}


def list_users(db: Session, event_id: str) -> list[User]:
    stmt = (
        select(User)
        .join(Membership, Membership.user_id == User.id)
        .where(Membership.event_id == event_id)
        .order_by(Membership.joined_at.asc())
    )
    return list(db.scalars(stmt).all())
