from datetime import datetime

from pydantic import BaseModel, EmailStr

from modsquad.schemas.common import CamelModel


class SignupRequest(BaseModel):
    username: str | None = None
    email: EmailStr | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileRead(CamelModel):
    id: str
    bio: str | None = None
    location: str | None = None
    avatar_url: str | None = None
    instagram_url: str | None = None
    facebook_url: str | None = None
    youtube_url: str | None = None


class ProfileUpdate(CamelModel):
    bio: str | None = None
    location: str | None = None
    avatar_url: str | None = None
    instagram_url: str | None = None
    facebook_url: str | None = None
    youtube_url: str | None = None


class UserRead(CamelModel):
    id: str
    username: str
    email: EmailStr
    is_admin: bool
    created_at: datetime
    profile: ProfileRead | None = None


class AuthResponse(BaseModel):
    user: UserRead
    token: str


class CurrentUserResponse(BaseModel):
    user: UserRead


class ProfileUpdateResponse(BaseModel):
    user: UserRead
    profile: ProfileRead


class AvatarResponse(ProfileUpdateResponse):
    url: str
