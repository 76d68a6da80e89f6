from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.core.dependencies import require_role
from app.models.project import Application, Invite, Project, TeamMember
from app.models.user import User
from app.schemas.application import InviteResponse
from app.schemas.matching import (
    ApplicationProjectSummary,
    CollaboratorApplication,
    CollaboratorStats,
    MatchResponse,
    ProjectMatch,
)
from app.services.matching import average_match_score, calculate_match_score, rank_projects
from app.services.projects import build_project_response, get_collaborator_profile

logger = structlog.get_logger()
router = APIRouter(prefix="/collaborators", tags=["collaborators"])


async def _active_projects_with_owners(db: AsyncSession) -> list[tuple[Project, User]]:
    result = await db.execute(
        select(Project, User)
        .join(User, User.id == Project.owner_id)
        .where(Project.status == "active")
        .order_by(Project.created_at.desc())
    )
    return list(result.all())


@router.get("/matches", response_model=MatchResponse)
async def get_matches(
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    """Active projects ranked by how well they fit the caller's profile."""
    settings = get_settings()
    profile = await get_collaborator_profile(db, current_user.id)
    rows = await _active_projects_with_owners(db)
    owners = {project.id: owner for project, owner in rows}

    ranked = rank_projects(profile, [project for project, _ in rows], settings.MATCH_SCORE_THRESHOLD)

    matches = [
        ProjectMatch(
            **build_project_response(project).model_dump(),
            owner_name=owners[project.id].full_name,
            match_score=result.score,
            match_reasons=result.reasons,
        )
        for project, result in ranked
    ]

    logger.info(
        "matches_computed",
        user_id=str(current_user.id),
        candidates=len(rows),
        matches=len(matches),
    )

    return MatchResponse(matches=matches, total=len(matches))


@router.get("/applications", response_model=list[CollaboratorApplication])
async def get_my_applications(
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    profile = await get_collaborator_profile(db, current_user.id)

    result = await db.execute(
        select(Application, Project, User)
        .join(Project, Project.id == Application.project_id)
        .join(User, User.id == Project.owner_id)
        .where(Application.user_id == current_user.id)
        .order_by(Application.applied_at.desc())
    )

    applications = []
    for application, project, owner in result.all():
        match = calculate_match_score(profile, project)
        applications.append(
            CollaboratorApplication(
                id=str(application.id),
                project=ApplicationProjectSummary(
                    id=str(project.id),
                    title=project.title,
                    roles=project.roles_needed or [],
                    owner_name=owner.full_name,
                    status=project.status,
                    lifecycle_stage=project.lifecycle_stage,
                ),
                status=application.status,
                role=application.role_applied_for or "Collaborator",
                applied_at=application.applied_at,
                match_score=match.score,
                message=application.message or "",
            )
        )

    return applications


@router.get("/stats", response_model=CollaboratorStats)
async def get_dashboard_stats(
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    settings = get_settings()
    profile = await get_collaborator_profile(db, current_user.id)

    result = await db.execute(select(Project).where(Project.status == "active"))
    match_count, avg_score = average_match_score(
        profile, result.scalars().all(), settings.MATCH_SCORE_THRESHOLD
    )

    stages = await db.execute(
        select(Project.lifecycle_stage)
        .join(TeamMember, TeamMember.project_id == Project.id)
        .where(TeamMember.user_id == current_user.id)
    )
    stages = [row[0] for row in stages.all()]

    pending = await db.scalar(
        select(func.count())
        .select_from(Application)
        .where(Application.user_id == current_user.id, Application.status == "pending")
    )

    return CollaboratorStats(
        matches_received=match_count,
        projects_joined=sum(1 for stage in stages if stage != "completed"),
        completed_projects=sum(1 for stage in stages if stage == "completed"),
        pending_applications=pending or 0,
        match_score=avg_score,
    )


@router.patch("/applications/{application_id}/withdraw")
async def withdraw_application(
    application_id: UUID,
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    application = await db.get(Application, application_id)
    if not application or application.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Application not found")

    if application.status != "pending":
        raise HTTPException(status_code=400, detail=f"Application already {application.status}")

    application.status = "withdrawn"
    await db.flush()

    logger.info("application_withdrawn", application_id=str(application.id))

    return {"status": "ok", "message": "Application withdrawn"}


@router.get("/invites", response_model=list[InviteResponse])
async def get_my_invites(
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Invite, Project)
        .join(Project, Project.id == Invite.project_id)
        .where(Invite.user_id == current_user.id, Invite.status == "pending")
        .order_by(Invite.invited_at.desc())
    )
    return [
        InviteResponse(
            id=str(invite.id),
            project_id=str(project.id),
            project_title=project.title,
            status=invite.status,
            invited_at=invite.invited_at,
        )
        for invite, project in result.all()
    ]
