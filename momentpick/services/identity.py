import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from momentpick.core.security import Identity, create_access_token, hash_password, verify_password
from momentpick.models.user import User
from momentpick.services.exceptions import AuthError, ConflictError, InternalError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

INVALID_LOGIN = "Invalid email or password."


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def identity_for(user: User) -> Identity:
    return Identity(id=user.id, email=user.email, name=user.name)


def register(db: Session, name: str, email: str, password: str) -> tuple[str, User]:
    name = (name or "").strip()
    email = normalize_email(email)
    if not name or not email or not password:
        raise ValidationError("Name, email, and password are required.")

    if db.scalar(select(User.id).where(User.email == email)):
        raise ConflictError("An account with this email already exists.")

    user = User(name=name, email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("An account with this email already exists.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("register_failed")
        raise InternalError("Failed to create account.") from exc
    db.refresh(user)
    logger.info("user_registered", extra={"user_id": user.id})
    return create_access_token(identity_for(user)), user


def login(db: Session, email: str, password: str) -> tuple[str, User]:
    email = normalize_email(email)
    if not email or not password:
        raise ValidationError("Email and password are required.")

    user = db.scalar(select(User).where(User.email == email))
    if not user or not verify_password(password, user.password_hash):
        raise AuthError(INVALID_LOGIN)
    return create_access_token(identity_for(user)), user


def get_current_user(db: Session, identity: Identity) -> User:
    user = db.get(User, identity.id)
    if not user:
        raise NotFoundError("User not found.")
    return user
