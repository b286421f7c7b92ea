from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from modsquad.db.session import get_db
from modsquad.models.user import User
from modsquad.routers.deps import get_current_user
from modsquad.schemas.auth import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    ProfileRead,
    ProfileUpdate,
    ProfileUpdateResponse,
    SignupRequest,
    UserRead,
)
from modsquad.schemas.common import MessageResponse
from modsquad.services.accounts import authenticate, issue_token, register_user, update_profile

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, db: Session = Depends(get_db)) -> AuthResponse:
    user = register_user(db, payload.username, payload.email, payload.password)
    return AuthResponse(user=UserRead.model_validate(user), token=issue_token(user))


@router.post("/signin", response_model=AuthResponse)
def signin(payload: LoginRequest, db: Session = Depends(get_db)) -> AuthResponse:
    user = authenticate(db, payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return AuthResponse(user=UserRead.model_validate(user), token=issue_token(user))


@router.post("/signout", response_model=MessageResponse)
def signout() -> MessageResponse:
    return MessageResponse(message="Successfully signed out")


@router.get("/me", response_model=CurrentUserResponse)
def me(current_user: User = Depends(get_current_user)) -> CurrentUserResponse:
    return CurrentUserResponse(user=UserRead.model_validate(current_user))


@router.put("/profile", response_model=ProfileUpdateResponse)
def edit_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ProfileUpdateResponse:
    profile = update_profile(db, current_user, payload.model_dump(include=payload.model_fields_set))
    return ProfileUpdateResponse(
        user=UserRead.model_validate(current_user),
        profile=ProfileRead.model_validate(profile),
    )
