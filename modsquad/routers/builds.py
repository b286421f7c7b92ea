from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from modsquad.models.build import Build
from modsquad.models.user import User
from modsquad.routers.deps import get_build_manager, get_current_user
from modsquad.schemas.build import BuildFields, BuildRead, PublicBuildRead
from modsquad.schemas.common import MessageResponse
from modsquad.services.errors import ValidationError
from modsquad.services.lifecycle import BuildLifecycleManager

router = APIRouter(prefix="/builds", tags=["builds"])

BUILD_FORM_FIELDS = ("title", "description", "carMake", "carModel", "carYear")


async def read_build_form(request: Request) -> tuple[BuildFields, list[UploadFile]]:
    """Split a multipart build form into submitted fields and image uploads.

    Only keys present in the form end up in ``BuildFields.model_fields_set``.
    """
    form = await request.form()
    submitted = {key: form[key] for key in BUILD_FORM_FIELDS if isinstance(form.get(key), str)}
    try:
        fields = BuildFields.model_validate(submitted)
    except PydanticValidationError as exc:
        problems = "; ".join(f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors())
        raise ValidationError(problems) from exc
    uploads = [item for item in form.getlist("images") if isinstance(item, UploadFile)]
    return fields, uploads


@router.get("/public", response_model=list[PublicBuildRead])
def list_public_builds(manager: BuildLifecycleManager = Depends(get_build_manager)) -> list[Build]:
    return manager.list_public()


@router.get("", response_model=list[BuildRead])
def list_my_builds(
    manager: BuildLifecycleManager = Depends(get_build_manager),
    current_user: User = Depends(get_current_user),
) -> list[Build]:
    return manager.list_for_owner(current_user.id)


@router.post("", response_model=BuildRead, status_code=status.HTTP_201_CREATED)
async def create_build(
    request: Request,
    manager: BuildLifecycleManager = Depends(get_build_manager),
    current_user: User = Depends(get_current_user),
) -> Build:
    fields, uploads = await read_build_form(request)
    return await manager.create(current_user.id, fields, uploads)


@router.get("/{build_id}", response_model=BuildRead)
def get_build(
    build_id: str,
    manager: BuildLifecycleManager = Depends(get_build_manager),
    current_user: User = Depends(get_current_user),
) -> Build:
    return manager.get(build_id, current_user.id)


@router.put("/{build_id}", response_model=BuildRead)
async def update_build(
    build_id: str,
    request: Request,
    manager: BuildLifecycleManager = Depends(get_build_manager),
    current_user: User = Depends(get_current_user),
) -> Build:
    fields, uploads = await read_build_form(request)
    return await manager.update(build_id, current_user.id, fields, uploads)


@router.delete("/{build_id}", response_model=MessageResponse)
def delete_build(
    build_id: str,
    manager: BuildLifecycleManager = Depends(get_build_manager),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    manager.delete_build(build_id, current_user.id)
    return MessageResponse(message="Build deleted successfully")


@router.delete("/{build_id}/images/{image_id}", response_model=BuildRead)
def delete_build_image(
    build_id: str,
    image_id: str,
    manager: BuildLifecycleManager = Depends(get_build_manager),
    current_user: User = Depends(get_current_user),
) -> Build:
    return manager.delete_image(build_id, current_user.id, image_id)
