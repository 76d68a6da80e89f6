from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.project import LIFECYCLE_STAGES, PROJECT_STATUSES
from app.schemas.profile import LEVEL_PATTERN


def clean_names(values: list[str]) -> list[str]:
    """Strip entries and drop blanks and case-insensitive duplicates, keeping order."""
    seen = set()
    result = []
    for value in values:
        value = value.strip()
        if value and value.lower() not in seen:
            seen.add(value.lower())
            result.append(value)
    return result


class ProjectDetails(BaseModel):
    experience_level: str = Field(pattern=LEVEL_PATTERN)
    timeline: str = Field(min_length=1, max_length=255)
    team_size: int = Field(ge=1, le=100)


class ProjectCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    roles_needed: list[str] = Field(min_length=1)
    tech_stack: list[str] = Field(min_length=1)
    project_details: ProjectDetails
    status: str = Field("active", pattern=r"^(active|draft)$")

    @field_validator("roles_needed", "tech_stack")
    @classmethod
    def strip_names(cls, v):
        cleaned = clean_names(v)
        if not cleaned:
            raise ValueError("at least one non-empty entry is required")
        return cleaned


class ProjectUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    roles_needed: list[str] | None = None
    tech_stack: list[str] | None = None
    project_details: ProjectDetails | None = None
    status: str | None = None
    lifecycle_stage: str | None = None

    @field_validator("roles_needed", "tech_stack")
    @classmethod
    def strip_names(cls, v):
        if v is None:
            return None
        return clean_names(v)

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v is not None and v not in PROJECT_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(PROJECT_STATUSES)}")
        return v

    @field_validator("lifecycle_stage")
    @classmethod
    def check_lifecycle_stage(cls, v):
        if v is not None and v not in LIFECYCLE_STAGES:
            raise ValueError(f"lifecycle_stage must be one of: {', '.join(LIFECYCLE_STAGES)}")
        return v


class ProjectResponse(BaseModel):
    id: str
    owner_id: str
    title: str
    description: str
    roles_needed: list[str]
    tech_stack: list[str]
    project_details: ProjectDetails | None
    status: str
    lifecycle_stage: str
    views: int
    created_at: datetime
    team_count: int = 0
    applicant_count: int = 0


class PaginatedProjects(BaseModel):
    items: list[ProjectResponse]
    total: int
    page: int
    page_size: int


class TeamMemberResponse(BaseModel):
    user_id: str
    full_name: str
    role: str
    joined_at: datetime


class ApplyRequest(BaseModel):
    role_applied_for: str | None = Field(None, max_length=255)
    message: str = Field("", max_length=1000)


class InviteRequest(BaseModel):
    user_id: str


class OwnerStats(BaseModel):
    total_projects: int
    projects_by_status: dict[str, int]
    applications_by_status: dict[str, int]
    total_views: int
