from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from app.schemas.project import ProjectResponse


class MatchReason(BaseModel):
    type: Literal["strength", "consideration"]
    text: str


class MatchResult(BaseModel):
    score: int = 0
    reasons: list[MatchReason] = []


class ProjectMatch(ProjectResponse):
    owner_name: str | None = None
    match_score: int
    match_reasons: list[MatchReason]


class MatchResponse(BaseModel):
    matches: list[ProjectMatch]
    total: int


class ApplicationProjectSummary(BaseModel):
    id: str
    title: str
    roles: list[str]
    owner_name: str | None = None
    status: str
    lifecycle_stage: str


class CollaboratorApplication(BaseModel):
    id: str
    project: ApplicationProjectSummary
    status: str
    role: str
    applied_at: datetime
    match_score: int
    message: str


class CollaboratorStats(BaseModel):
    matches_received: int
    projects_joined: int
    completed_projects: int
    pending_applications: int
    match_score: int
