from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from momentpick.core.security import Identity
from momentpick.db.session import get_db
from momentpick.routers.deps import get_identity
from momentpick.schemas.auth import LoginRequest, MeResponse, TokenResponse, UserCreate, UserRead
from momentpick.services import identity as identity_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)) -> TokenResponse:
    token, user = identity_service.register(db, payload.name, payload.email, payload.password)
    return TokenResponse(message="Account created successfully!", token=token, user=UserRead.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    token, user = identity_service.login(db, payload.email, payload.password)
    return TokenResponse(message="Login successful!", token=token, user=UserRead.model_validate(user))


@router.get("/me", response_model=MeResponse)
def me(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> MeResponse:
    user = identity_service.get_current_user(db, identity)
    return MeResponse(user=UserRead.model_validate(user))
