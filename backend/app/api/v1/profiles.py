"""
Exam Portal - Profile API Routes
Endpoints for self-service profiles and admin role management
"""
import uuid

from fastapi import APIRouter, status

from app.api.deps import (
    SERVICE_ERRORS,
    AdminActor,
    CurrentActor,
    DbSession,
    IdentityActor,
    to_http_exception,
)
from app.schemas.user import (
    ProfileCreate,
    ProfileResponse,
    ProfileRoleUpdate,
    ProfileUpdate,
)
from app.services.profiles import ProfileService

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.post(
    "/me",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create own profile",
    description="Create the profile for a freshly signed-up identity. New profiles are students.",
)
async def create_my_profile(
    profile_data: ProfileCreate,
    actor: IdentityActor,
    db: DbSession,
) -> ProfileResponse:
    try:
        profile = await ProfileService(db, actor).create_own_profile(
            full_name=profile_data.full_name,
            email=profile_data.email,
        )
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
    return ProfileResponse.model_validate(profile)


@router.get("/me", response_model=ProfileResponse, summary="Get own profile")
async def get_my_profile(actor: CurrentActor, db: DbSession) -> ProfileResponse:
    try:
        profile = await ProfileService(db, actor).get_profile(actor.id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
    return ProfileResponse.model_validate(profile)


@router.patch(
    "/me",
    response_model=ProfileResponse,
    summary="Update own profile",
    description="Update name or email. Roles can only be changed by an admin.",
)
async def update_my_profile(
    profile_update: ProfileUpdate,
    actor: CurrentActor,
    db: DbSession,
) -> ProfileResponse:
    update_data = profile_update.model_dump(exclude_unset=True, exclude_none=True)
    try:
        profile = await ProfileService(db, actor).update_profile(actor.id, update_data)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
    return ProfileResponse.model_validate(profile)


@router.get("", response_model=list[ProfileResponse], summary="List profiles (admin)")
async def list_profiles(actor: AdminActor, db: DbSession) -> list[ProfileResponse]:
    profiles = await ProfileService(db, actor).list_profiles()
    return [ProfileResponse.model_validate(p) for p in profiles]


@router.patch(
    "/{profile_id}/role",
    response_model=ProfileResponse,
    summary="Change a profile's role (admin)",
)
async def update_profile_role(
    profile_id: uuid.UUID,
    role_update: ProfileRoleUpdate,
    actor: AdminActor,
    db: DbSession,
) -> ProfileResponse:
    try:
        profile = await ProfileService(db, actor).set_role(profile_id, role_update.role)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
    return ProfileResponse.model_validate(profile)
