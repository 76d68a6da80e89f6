from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import require_role
from app.models.profile import CollaboratorProfile, ProjectOwnerProfile
from app.models.project import Project
from app.models.user import User
from app.schemas.profile import (
    CollaboratorProfileResponse,
    CollaboratorProfileUpdate,
    OwnerProfileResponse,
    OwnerProfileUpdate,
)
from app.services.projects import get_collaborator_profile

logger = structlog.get_logger()
router = APIRouter(prefix="/profiles", tags=["profiles"])

# Non-nullable columns reset to their empty value when cleared
_COLLABORATOR_DEFAULTS = {"name": "", "bio": "", "location": "", "roles": [], "skills": []}
_OWNER_TEXT_FIELDS = ("name", "company", "role", "bio", "location")


def _collaborator_response(profile: CollaboratorProfile) -> CollaboratorProfileResponse:
    return CollaboratorProfileResponse(
        id=str(profile.id),
        user_id=str(profile.user_id),
        name=profile.name or "",
        email=profile.email or "",
        bio=profile.bio or "",
        location=profile.location or "",
        roles=profile.roles or [],
        skills=profile.skills or [],
        availability=profile.availability,
        experience_level=profile.experience_level,
        portfolio_url=profile.portfolio_url,
        github_url=profile.github_url,
        linkedin_url=profile.linkedin_url,
    )


async def _owner_response(db: AsyncSession, profile: ProjectOwnerProfile) -> OwnerProfileResponse:
    projects_posted = await db.scalar(
        select(func.count()).select_from(Project).where(Project.owner_id == profile.user_id)
    )
    return OwnerProfileResponse(
        id=str(profile.id),
        user_id=str(profile.user_id),
        name=profile.name or "",
        email=profile.email or "",
        company=profile.company or "",
        role=profile.role or "",
        bio=profile.bio or "",
        location=profile.location or "",
        verified=profile.verified,
        projects_posted=projects_posted or 0,
        website_url=profile.website_url,
        linkedin_url=profile.linkedin_url,
        twitter_url=profile.twitter_url,
        github_url=profile.github_url,
    )


async def _own_collaborator_profile(db: AsyncSession, user: User) -> CollaboratorProfile:
    profile = await get_collaborator_profile(db, user.id)
    if profile is None:
        profile = CollaboratorProfile(user_id=user.id, name=user.full_name, email=user.email)
        db.add(profile)
        await db.flush()
    return profile


async def _own_owner_profile(db: AsyncSession, user: User) -> ProjectOwnerProfile:
    result = await db.execute(
        select(ProjectOwnerProfile).where(ProjectOwnerProfile.user_id == user.id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = ProjectOwnerProfile(user_id=user.id, name=user.full_name, email=user.email)
        db.add(profile)
        await db.flush()
    return profile


@router.get("/collaborator/me", response_model=CollaboratorProfileResponse)
async def get_my_collaborator_profile(
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    profile = await _own_collaborator_profile(db, current_user)
    return _collaborator_response(profile)


@router.put("/collaborator/me", response_model=CollaboratorProfileResponse)
async def update_my_collaborator_profile(
    data: CollaboratorProfileUpdate,
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    profile = await _own_collaborator_profile(db, current_user)

    update_data = data.model_dump(exclude_unset=True, mode="json")
    for field, value in update_data.items():
        if value is None and field in _COLLABORATOR_DEFAULTS:
            value = _COLLABORATOR_DEFAULTS[field]
        setattr(profile, field, value)
    await db.flush()

    logger.info(
        "collaborator_profile_updated",
        user_id=str(current_user.id),
        updated_fields=list(update_data.keys()),
    )
    return _collaborator_response(profile)


@router.get("/owner/me", response_model=OwnerProfileResponse)
async def get_my_owner_profile(
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    profile = await _own_owner_profile(db, current_user)
    return await _owner_response(db, profile)


@router.put("/owner/me", response_model=OwnerProfileResponse)
async def update_my_owner_profile(
    data: OwnerProfileUpdate,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    profile = await _own_owner_profile(db, current_user)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field in _OWNER_TEXT_FIELDS:
            value = ""
        setattr(profile, field, value)
    await db.flush()

    logger.info(
        "owner_profile_updated",
        user_id=str(current_user.id),
        updated_fields=list(update_data.keys()),
    )
    return await _owner_response(db, profile)


@router.get("/collaborators/{user_id}", response_model=CollaboratorProfileResponse)
async def get_collaborator_profile_by_user(
    user_id: UUID,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    """Let a project owner look at a collaborator's profile."""
    profile = await get_collaborator_profile(db, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return _collaborator_response(profile)
