from datetime import datetime

from modsquad.schemas.common import CamelModel


class BuildFields(CamelModel):
    """Editable build attributes.

    Only the attributes present in ``model_fields_set`` are applied on update,
    so an absent field keeps its stored value while an empty one overwrites it.
    """

    title: str | None = None
    description: str | None = None
    car_make: str | None = None
    car_model: str | None = None
    car_year: int | None = None


class ImageRead(CamelModel):
    id: str
    url: str
    build_id: str
    created_at: datetime


class BuildRead(CamelModel):
    id: str
    title: str
    description: str
    car_make: str
    car_model: str
    car_year: int
    user_id: str
    created_at: datetime
    updated_at: datetime
    images: list[ImageRead]


class OwnerProfileRead(CamelModel):
    avatar_url: str | None = None


class BuildOwnerRead(CamelModel):
    username: str
    profile: OwnerProfileRead | None = None


class PublicBuildRead(BuildRead):
    user: BuildOwnerRead
