from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.profile import CollaboratorProfile
from app.models.project import Application, Project, TeamMember
from app.models.user import User
from app.schemas.project import ProjectDetails, ProjectResponse


def project_details(project: Project) -> ProjectDetails | None:
    if not project.experience_level or not project.timeline:
        return None
    return ProjectDetails(
        experience_level=project.experience_level,
        timeline=project.timeline,
        team_size=project.team_size or 1,
    )


def build_project_response(
    project: Project, team_count: int = 0, applicant_count: int = 0
) -> ProjectResponse:
    return ProjectResponse(
        id=str(project.id),
        owner_id=str(project.owner_id),
        title=project.title,
        description=project.description,
        roles_needed=project.roles_needed or [],
        tech_stack=project.tech_stack or [],
        project_details=project_details(project),
        status=project.status,
        lifecycle_stage=project.lifecycle_stage,
        views=project.views or 0,
        created_at=project.created_at,
        team_count=team_count,
        applicant_count=applicant_count,
    )


async def _count_by_project(db: AsyncSession, column, project_ids: list[UUID]) -> dict[UUID, int]:
    result = await db.execute(
        select(column, func.count()).where(column.in_(project_ids)).group_by(column)
    )
    return dict(result.all())


async def project_counts(db: AsyncSession, project_ids: list[UUID]) -> dict[UUID, tuple[int, int]]:
    """Map each project id to (team size, application count)."""
    if not project_ids:
        return {}
    teams = await _count_by_project(db, TeamMember.project_id, project_ids)
    applicants = await _count_by_project(db, Application.project_id, project_ids)
    return {pid: (teams.get(pid, 0), applicants.get(pid, 0)) for pid in project_ids}


async def build_project_responses(db: AsyncSession, projects) -> list[ProjectResponse]:
    counts = await project_counts(db, [p.id for p in projects])
    return [
        build_project_response(p, team_count=counts[p.id][0], applicant_count=counts[p.id][1])
        for p in projects
    ]


async def get_project_or_404(db: AsyncSession, project_id: UUID) -> Project:
    project = await db.get(Project, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


async def get_owned_project(db: AsyncSession, project_id: UUID, owner: User) -> Project:
    project = await get_project_or_404(db, project_id)
    if project.owner_id != owner.id:
        raise HTTPException(status_code=403, detail="Not the owner of this project")
    return project


async def is_team_member(db: AsyncSession, project_id: UUID, user_id: UUID) -> bool:
    member = await db.scalar(
        select(TeamMember.id).where(
            TeamMember.project_id == project_id,
            TeamMember.user_id == user_id,
        )
    )
    return member is not None


async def add_team_member(db: AsyncSession, project_id: UUID, user_id: UUID, role: str) -> bool:
    """Add a user to a project team. Returns False if already a member."""
    if await is_team_member(db, project_id, user_id):
        return False
    db.add(TeamMember(project_id=project_id, user_id=user_id, role=role))
    await db.flush()
    return True


async def get_collaborator_profile(db: AsyncSession, user_id: UUID) -> CollaboratorProfile | None:
    result = await db.execute(
        select(CollaboratorProfile).where(CollaboratorProfile.user_id == user_id)
    )
    return result.scalar_one_or_none()
