import os

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.database import Base, get_db
from app.core.rate_limit import limiter
from app.core.security import create_access_token, hash_password
from app.main import app

# SQLite by default; point TEST_DATABASE_URL at PostgreSQL to run against the real dialect
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test.db")

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

limiter.enabled = False


@pytest_asyncio.fixture()
async def _setup_db():
    """Create tables, yield, then drop."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture()
async def db_session(_setup_db):
    async with TestSession() as session:
        yield session


@pytest_asyncio.fixture()
async def client(_setup_db):
    async def override_get_db():
        async with TestSession() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _create_user(db_session, email, role="collaborator", full_name=None, **profile_fields):
    from app.models.profile import CollaboratorProfile, ProjectOwnerProfile
    from app.models.user import User

    user = User(
        email=email,
        password_hash=hash_password("testpass123"),
        full_name=full_name or f"{role.replace('_', ' ').title()} User",
        role=role,
        is_verified=True,
    )
    db_session.add(user)
    await db_session.flush()

    profile_cls = ProjectOwnerProfile if role == "project_owner" else CollaboratorProfile
    db_session.add(profile_cls(user_id=user.id, name=user.full_name, email=email, **profile_fields))
    await db_session.commit()

    token = create_access_token({"sub": str(user.id), "role": role})
    return {"Authorization": f"Bearer {token}"}, user


@pytest_asyncio.fixture()
async def owner_data(db_session):
    return await _create_user(db_session, "owner@example.com", "project_owner", "Olivia Owner")


@pytest_asyncio.fixture()
async def owner_headers(owner_data):
    headers, _ = owner_data
    return headers


@pytest_asyncio.fixture()
async def collaborator_data(db_session):
    return await _create_user(
        db_session,
        "collab@example.com",
        "collaborator",
        "Carl Collaborator",
        roles=["Frontend Developer"],
        skills=[{"name": "React", "level": "advanced"}, "TypeScript"],
        experience_level="intermediate",
        availability="flexible",
    )


@pytest_asyncio.fixture()
async def collaborator_headers(collaborator_data):
    headers, _ = collaborator_data
    return headers


def _project_payload(**overrides):
    payload = {
        "title": "Open Source Dashboard",
        "description": "A dashboard for community metrics",
        "roles_needed": ["Frontend Developer", "Designer"],
        "tech_stack": ["React", "TypeScript", "Node.js"],
        "project_details": {
            "experience_level": "intermediate",
            "timeline": "3 months",
            "team_size": 4,
        },
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture()
async def make_project(client):
    """Factory posting a project as the given user and returning its JSON."""

    async def _make(headers, **overrides):
        res = await client.post(
            "/api/v1/projects", headers=headers, json=_project_payload(**overrides)
        )
        assert res.status_code == 201, res.text
        return res.json()

    return _make


@pytest_asyncio.fixture()
async def make_user(db_session):
    async def _make(email, role="collaborator", full_name=None, **profile_fields):
        return await _create_user(db_session, email, role, full_name, **profile_fields)

    return _make
