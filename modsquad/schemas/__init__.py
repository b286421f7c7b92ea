from modsquad.schemas.admin import StatsRead, SweepResponse
from modsquad.schemas.auth import (
    AuthResponse,
    AvatarResponse,
    CurrentUserResponse,
    LoginRequest,
    ProfileRead,
    ProfileUpdate,
    ProfileUpdateResponse,
    SignupRequest,
    UserRead,
)
from modsquad.schemas.build import BuildFields, BuildOwnerRead, BuildRead, ImageRead, PublicBuildRead
from modsquad.schemas.common import MessageResponse

__all__ = [
    "SignupRequest",
    "LoginRequest",
    "UserRead",
    "ProfileRead",
    "ProfileUpdate",
    "AuthResponse",
    "CurrentUserResponse",
    "ProfileUpdateResponse",
    "AvatarResponse",
    "BuildFields",
    "BuildRead",
    "BuildOwnerRead",
    "ImageRead",
    "PublicBuildRead",
    "MessageResponse",
    "StatsRead",
    "SweepResponse",
]
