from datetime import datetime

from pydantic import BaseModel


class ApplicantUser(BaseModel):
    id: str
    full_name: str
    email: str


class ApplicationResponse(BaseModel):
    id: str
    project_id: str
    project_title: str
    applicant: ApplicantUser
    role_applied_for: str | None
    message: str
    status: str
    match_score: int | None
    applied_at: datetime


class ApplicationList(BaseModel):
    items: list[ApplicationResponse]
    total: int


class InviteResponse(BaseModel):
    id: str
    project_id: str
    project_title: str
    status: str
    invited_at: datetime
