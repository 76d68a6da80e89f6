from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import require_role
from app.models.project import APPLICATION_STATUSES, Application, Project
from app.models.user import User
from app.schemas.application import ApplicantUser, ApplicationList, ApplicationResponse
from app.services.notification_service import create_notification
from app.services.projects import add_team_member

logger = structlog.get_logger()
router = APIRouter(prefix="/applicants", tags=["applicants"])


def _application_response(application: Application, project: Project, user: User) -> ApplicationResponse:
    return ApplicationResponse(
        id=str(application.id),
        project_id=str(project.id),
        project_title=project.title,
        applicant=ApplicantUser(id=str(user.id), full_name=user.full_name, email=user.email),
        role_applied_for=application.role_applied_for,
        message=application.message or "",
        status=application.status,
        match_score=application.match_score,
        applied_at=application.applied_at,
    )


async def _owned_application(
    db: AsyncSession, application_id: UUID, owner: User
) -> tuple[Application, Project, User]:
    result = await db.execute(
        select(Application, Project, User)
        .join(Project, Project.id == Application.project_id)
        .join(User, User.id == Application.user_id)
        .where(Application.id == application_id)
    )
    row = result.one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="Applicant not found")

    application, project, user = row
    if project.owner_id != owner.id:
        raise HTTPException(status_code=404, detail="Applicant not found")
    return application, project, user


@router.get("", response_model=ApplicationList)
async def list_applicants(
    status_filter: str | None = None,
    project_id: UUID | None = None,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    if status_filter and status_filter not in APPLICATION_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Possible values: {', '.join(APPLICATION_STATUSES)}",
        )

    query = (
        select(Application, Project, User)
        .join(Project, Project.id == Application.project_id)
        .join(User, User.id == Application.user_id)
        .where(Project.owner_id == current_user.id)
    )
    if status_filter:
        query = query.where(Application.status == status_filter)
    if project_id:
        query = query.where(Application.project_id == project_id)

    result = await db.execute(query.order_by(Application.applied_at.desc()))
    items = [_application_response(a, p, u) for a, p, u in result.all()]

    return ApplicationList(items=items, total=len(items))


@router.get("/stats")
async def applicant_stats(
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    """Number of applications per status across the owner's projects."""
    result = await db.execute(
        select(Application.status, func.count())
        .join(Project, Project.id == Application.project_id)
        .where(Project.owner_id == current_user.id)
        .group_by(Application.status)
    )
    counts = {status: 0 for status in APPLICATION_STATUSES}
    counts.update({row[0]: row[1] for row in result.all()})
    return counts


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_applicant(
    application_id: UUID,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    application, project, user = await _owned_application(db, application_id, current_user)
    return _application_response(application, project, user)


@router.patch("/{application_id}/accept", response_model=ApplicationResponse)
async def accept_applicant(
    application_id: UUID,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    application, project, user = await _owned_application(db, application_id, current_user)
    if application.status != "pending":
        raise HTTPException(status_code=400, detail=f"Application already {application.status}")

    application.status = "accepted"
    await add_team_member(db, project.id, user.id, application.role_applied_for or "Collaborator")

    await create_notification(
        db,
        user_id=user.id,
        sender_id=current_user.id,
        project_id=project.id,
        type="acceptance",
        title="Application accepted",
        message=f'Congratulations! Your application for "{project.title}" has been accepted.',
    )

    logger.info("applicant_accepted", application_id=str(application.id), project_id=str(project.id))

    return _application_response(application, project, user)


@router.patch("/{application_id}/reject", response_model=ApplicationResponse)
async def reject_applicant(
    application_id: UUID,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    application, project, user = await _owned_application(db, application_id, current_user)
    if application.status != "pending":
        raise HTTPException(status_code=400, detail=f"Application already {application.status}")

    application.status = "rejected"
    await db.flush()

    await create_notification(
        db,
        user_id=user.id,
        sender_id=current_user.id,
        project_id=project.id,
        type="rejection",
        title="Application update",
        message=f'Your application for "{project.title}" was not accepted this time.',
    )

    logger.info("applicant_rejected", application_id=str(application.id), project_id=str(project.id))

    return _application_response(application, project, user)
