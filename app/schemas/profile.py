from pydantic import BaseModel, Field

LEVEL_PATTERN = r"^(beginner|intermediate|advanced|expert)$"
AVAILABILITY_PATTERN = r"^(full-time|part-time|weekends|flexible)$"


class SkillEntry(BaseModel):
    name: str = Field(min_length=1)
    level: str | None = Field(None, pattern=LEVEL_PATTERN)


class RoleEntry(BaseModel):
    type: str = Field(min_length=1)


class CollaboratorProfileUpdate(BaseModel):
    name: str | None = None
    bio: str | None = None
    location: str | None = None
    roles: list[str | RoleEntry] | None = None
    skills: list[str | SkillEntry] | None = None
    availability: str | None = Field(None, pattern=AVAILABILITY_PATTERN)
    experience_level: str | None = Field(None, pattern=LEVEL_PATTERN)
    portfolio_url: str | None = None
    github_url: str | None = None
    linkedin_url: str | None = None


class CollaboratorProfileResponse(BaseModel):
    id: str
    user_id: str
    name: str
    email: str
    bio: str
    location: str
    roles: list
    skills: list
    availability: str | None
    experience_level: str | None
    portfolio_url: str | None
    github_url: str | None
    linkedin_url: str | None


class OwnerProfileUpdate(BaseModel):
    name: str | None = None
    company: str | None = None
    role: str | None = None
    bio: str | None = None
    location: str | None = None
    website_url: str | None = None
    linkedin_url: str | None = None
    twitter_url: str | None = None
    github_url: str | None = None


class OwnerProfileResponse(BaseModel):
    id: str
    user_id: str
    name: str
    email: str
    company: str
    role: str
    bio: str
    location: str
    verified: bool
    projects_posted: int = 0
    website_url: str | None
    linkedin_url: str | None
    twitter_url: str | None
    github_url: str | None
