from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_user, require_role
from app.models.project import Application, Invite, Project, TeamMember
from app.models.user import User
from app.schemas.project import (
    ApplyRequest,
    InviteRequest,
    OwnerStats,
    PaginatedProjects,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    TeamMemberResponse,
)
from app.services.matching import calculate_match_score
from app.services.notification_service import create_notification
from app.services.projects import (
    add_team_member,
    build_project_response,
    build_project_responses,
    get_collaborator_profile,
    get_owned_project,
    get_project_or_404,
    is_team_member,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/projects", tags=["projects"])


async def _project_response(db: AsyncSession, project: Project) -> ProjectResponse:
    (response,) = await build_project_responses(db, [project])
    return response


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    project = Project(
        owner_id=current_user.id,
        title=data.title.strip(),
        description=data.description,
        roles_needed=data.roles_needed,
        tech_stack=data.tech_stack,
        experience_level=data.project_details.experience_level,
        timeline=data.project_details.timeline,
        team_size=data.project_details.team_size,
        status=data.status,
    )
    db.add(project)
    await db.flush()

    logger.info("project_created", project_id=str(project.id), owner_id=str(current_user.id))

    return build_project_response(project)


@router.get("/explore", response_model=PaginatedProjects)
async def explore_projects(
    search: str | None = Query(None, description="Search in title and description"),
    tech: str | None = Query(None, description="Only projects using this technology"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Project).where(Project.status == "active")

    if search:
        query = query.where(
            or_(
                Project.title.ilike(f"%{search}%"),
                Project.description.ilike(f"%{search}%"),
            )
        )

    ordered = query.order_by(Project.created_at.desc(), Project.id)

    if tech:
        # tech_stack is a JSON list; filter in Python to stay dialect-agnostic
        wanted = tech.strip().lower()
        result = await db.execute(ordered)
        projects = [
            p for p in result.scalars().all() if wanted in [t.lower() for t in (p.tech_stack or [])]
        ]
        total = len(projects)
        page_items = projects[(page - 1) * page_size : page * page_size]
    else:
        total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
        result = await db.execute(ordered.offset((page - 1) * page_size).limit(page_size))
        page_items = result.scalars().all()

    return PaginatedProjects(
        items=await build_project_responses(db, page_items),
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/mine", response_model=list[ProjectResponse])
async def my_projects(
    status_filter: str | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Owners get the projects they posted; collaborators the teams they joined."""
    if current_user.role == "project_owner":
        query = select(Project).where(Project.owner_id == current_user.id)
    else:
        query = (
            select(Project)
            .join(TeamMember, TeamMember.project_id == Project.id)
            .where(TeamMember.user_id == current_user.id)
        )

    if status_filter:
        query = query.where(Project.status == status_filter)

    result = await db.execute(query.order_by(Project.created_at.desc()))
    return await build_project_responses(db, result.scalars().all())


@router.get("/stats", response_model=OwnerStats)
async def owner_stats(
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    by_status = await db.execute(
        select(Project.status, func.count())
        .where(Project.owner_id == current_user.id)
        .group_by(Project.status)
    )
    projects_by_status = {row[0]: row[1] for row in by_status.all()}

    applications = await db.execute(
        select(Application.status, func.count())
        .join(Project, Project.id == Application.project_id)
        .where(Project.owner_id == current_user.id)
        .group_by(Application.status)
    )

    total_views = await db.scalar(
        select(func.coalesce(func.sum(Project.views), 0)).where(
            Project.owner_id == current_user.id
        )
    )

    return OwnerStats(
        total_projects=sum(projects_by_status.values()),
        projects_by_status=projects_by_status,
        applications_by_status={row[0]: row[1] for row in applications.all()},
        total_views=total_views or 0,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await get_project_or_404(db, project_id)

    if project.owner_id != current_user.id:
        if project.status == "draft":
            raise HTTPException(status_code=404, detail="Project not found")
        project.views = (project.views or 0) + 1
        await db.flush()

    return await _project_response(db, project)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, project_id, current_user)

    update_data = data.model_dump(exclude_unset=True, exclude={"project_details"})
    for field, value in update_data.items():
        if value is None:
            continue
        setattr(project, field, value)

    if data.project_details is not None:
        project.experience_level = data.project_details.experience_level
        project.timeline = data.project_details.timeline
        project.team_size = data.project_details.team_size
        update_data["project_details"] = True
    await db.flush()

    logger.info(
        "project_updated",
        project_id=str(project.id),
        updated_fields=list(update_data.keys()),
    )

    return await _project_response(db, project)


@router.post("/{project_id}/archive", response_model=ProjectResponse)
async def archive_project(
    project_id: UUID,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, project_id, current_user)
    project.status = "archived"
    await db.flush()

    logger.info("project_archived", project_id=str(project.id))

    return await _project_response(db, project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, project_id, current_user)

    logger.info("project_deleted", project_id=str(project.id), title=project.title)

    await db.delete(project)


@router.get("/{project_id}/team", response_model=list[TeamMemberResponse])
async def get_team(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await get_project_or_404(db, project_id)

    result = await db.execute(
        select(TeamMember, User)
        .join(User, User.id == TeamMember.user_id)
        .where(TeamMember.project_id == project_id)
        .order_by(TeamMember.joined_at)
    )
    return [
        TeamMemberResponse(
            user_id=str(user.id),
            full_name=user.full_name,
            role=member.role,
            joined_at=member.joined_at,
        )
        for member, user in result.all()
    ]


@router.post("/{project_id}/apply", status_code=status.HTTP_201_CREATED)
async def apply_to_project(
    project_id: UUID,
    data: ApplyRequest,
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    project = await get_project_or_404(db, project_id)
    if project.status != "active":
        raise HTTPException(status_code=400, detail="Project is not accepting applications")

    if await is_team_member(db, project_id, current_user.id):
        raise HTTPException(status_code=409, detail="Already a member of this project")

    profile = await get_collaborator_profile(db, current_user.id)
    match = calculate_match_score(profile, project)

    application = Application(
        project_id=project_id,
        user_id=current_user.id,
        role_applied_for=data.role_applied_for,
        message=data.message,
        match_score=match.score,
    )
    db.add(application)
    try:
        await db.flush()
    except IntegrityError:
        # one application per (project, user)
        await db.rollback()
        raise HTTPException(status_code=409, detail="Already applied")

    await create_notification(
        db,
        user_id=project.owner_id,
        sender_id=current_user.id,
        project_id=project.id,
        type="application",
        title="New application",
        message=f'{current_user.full_name} applied to "{project.title}".',
        data={"application_id": str(application.id), "match_score": match.score},
    )

    logger.info(
        "application_submitted",
        application_id=str(application.id),
        project_id=str(project_id),
        match_score=match.score,
    )

    return {
        "status": "ok",
        "message": "Application submitted",
        "application_id": str(application.id),
        "match_score": match.score,
    }


@router.post("/{project_id}/invites", status_code=status.HTTP_201_CREATED)
async def invite_collaborator(
    project_id: UUID,
    data: InviteRequest,
    current_user: User = Depends(require_role("project_owner")),
    db: AsyncSession = Depends(get_db),
):
    project = await get_owned_project(db, project_id, current_user)

    try:
        invitee_id = UUID(data.user_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="User not found")

    invitee = await db.get(User, invitee_id)
    if not invitee:
        raise HTTPException(status_code=404, detail="User not found")
    if invitee.role != "collaborator":
        raise HTTPException(status_code=400, detail="Only collaborators can be invited")

    if await is_team_member(db, project_id, invitee_id):
        raise HTTPException(status_code=409, detail="User already a collaborator")

    pending = await db.scalar(
        select(Invite.id).where(
            Invite.project_id == project_id,
            Invite.user_id == invitee_id,
            Invite.status == "pending",
        )
    )
    if pending:
        raise HTTPException(status_code=409, detail="User already invited")

    invite = Invite(project_id=project_id, user_id=invitee_id)
    db.add(invite)
    await db.flush()

    await create_notification(
        db,
        user_id=invitee_id,
        sender_id=current_user.id,
        project_id=project.id,
        type="invite",
        title="Project invitation",
        message=f'You have been invited to join "{project.title}".',
        data={"invite_id": str(invite.id)},
    )

    logger.info("collaborator_invited", project_id=str(project_id), user_id=str(invitee_id))

    return {"status": "ok", "message": "Invite sent successfully", "invite_id": str(invite.id)}


async def _pending_invite_for(db: AsyncSession, project_id: UUID, user_id: UUID) -> Invite:
    result = await db.execute(
        select(Invite)
        .where(Invite.project_id == project_id, Invite.user_id == user_id)
        .order_by(Invite.invited_at.desc())
    )
    invites = result.scalars().all()
    if not invites:
        raise HTTPException(status_code=404, detail="Invite not found")

    for invite in invites:
        if invite.status == "pending":
            return invite
    raise HTTPException(status_code=400, detail="Invite already processed")


@router.patch("/{project_id}/invite/accept")
async def accept_invite(
    project_id: UUID,
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    project = await get_project_or_404(db, project_id)
    invite = await _pending_invite_for(db, project_id, current_user.id)

    invite.status = "accepted"
    await add_team_member(db, project_id, current_user.id, "Collaborator")

    await create_notification(
        db,
        user_id=project.owner_id,
        sender_id=current_user.id,
        project_id=project.id,
        type="invite_accepted",
        title="Invitation accepted",
        message=f'{current_user.full_name} accepted your invitation to "{project.title}".',
    )

    logger.info("invite_accepted", project_id=str(project_id), user_id=str(current_user.id))

    return {"status": "ok", "message": "Invite accepted. You are now a collaborator."}


@router.patch("/{project_id}/invite/reject")
async def reject_invite(
    project_id: UUID,
    current_user: User = Depends(require_role("collaborator")),
    db: AsyncSession = Depends(get_db),
):
    project = await get_project_or_404(db, project_id)
    invite = await _pending_invite_for(db, project_id, current_user.id)

    invite.status = "rejected"
    await db.flush()

    await create_notification(
        db,
        user_id=project.owner_id,
        sender_id=current_user.id,
        project_id=project.id,
        type="invite_rejected",
        title="Invitation declined",
        message=f'{current_user.full_name} declined your invitation to "{project.title}".',
    )

    logger.info("invite_rejected", project_id=str(project_id), user_id=str(current_user.id))

    return {"status": "ok", "message": "Invite rejected"}
