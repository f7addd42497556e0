"""Shared test fixtures."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

from talentgate.config.settings import Settings
from talentgate.models.database import (
    Application,
    Candidate,
    Department,
    Interview,
    Job,
    Organization,
    Profile,
    TeamInvite,
    UserRole,
    UserRoleDepartment,
    _utc_now,
)
from talentgate.storage.database import init_db
from talentgate.types import RoleCode
from talentgate.web.app import create_app
from talentgate.web.auth.passwords import hash_password

TEST_PASSWORD = "correct-horse-battery"
# Low iteration count keeps seeded logins fast; verify_password reads it from the hash
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD, iterations=1_000)


class Seeder:
    """Inserts rows directly, bypassing the privileged write path."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    async def add(self, *rows: Any) -> None:
        async with AsyncSession(self.engine) as session:
            for row in rows:
                session.add(row)
            await session.commit()
            for row in rows:
                await session.refresh(row)

    async def org(self, slug: str, name: str = "") -> Organization:
        org = Organization(slug=slug, name=name or slug.title())
        await self.add(org)
        return org

    async def profile(
        self,
        email: str,
        org: Organization | None = None,
        *,
        is_active: bool = True,
    ) -> Profile:
        profile = Profile(
            email=email,
            name=email.split("@")[0],
            password_hash=TEST_PASSWORD_HASH,
            org_id=org.id if org else None,
            is_active=is_active,
        )
        await self.add(profile)
        return profile

    async def role(self, profile: Profile, org: Organization | None, role: RoleCode) -> UserRole:
        row = UserRole(user_id=profile.id, org_id=org.id if org else None, role=role.value)
        await self.add(row)
        return row

    async def member(self, email: str, org: Organization, role: RoleCode) -> Profile:
        profile = await self.profile(email, org)
        await self.role(profile, org, role)
        return profile

    async def department(self, org: Organization, name: str = "Engineering") -> Department:
        dept = Department(org_id=org.id, name=name)
        await self.add(dept)
        return dept

    async def assign_department(self, profile: Profile, dept: Department) -> None:
        await self.add(
            UserRoleDepartment(user_id=profile.id, org_id=dept.org_id, department_id=dept.id)
        )

    async def job(
        self,
        org: Organization,
        title: str = "Backend Engineer",
        department: Department | None = None,
    ) -> Job:
        job = Job(
            org_id=org.id,
            title=title,
            status="open",
            department_id=department.id if department else None,
        )
        await self.add(job)
        return job

    async def application(self, job: Job, org_id: str | None = None) -> Application:
        candidate = Candidate(org_id=org_id or job.org_id, full_name="Ada Lovelace")
        await self.add(candidate)
        application = Application(
            org_id=org_id or job.org_id, job_id=job.id, candidate_id=candidate.id
        )
        await self.add(application)
        return application

    async def interview(
        self,
        application: Application,
        interviewer: Profile | None = None,
    ) -> Interview:
        interview = Interview(
            org_id=application.org_id,
            application_id=application.id,
            interviewer_id=interviewer.id if interviewer else None,
            scheduled_at=_utc_now() + timedelta(days=1),
        )
        await self.add(interview)
        return interview

    async def invite(
        self,
        org: Organization,
        email: str,
        role: RoleCode | str = RoleCode.RECRUITER,
        *,
        expires_in: timedelta = timedelta(days=7),
        status: str = "pending",
    ) -> TeamInvite:
        invite = TeamInvite(
            org_id=org.id,
            email=email,
            role=str(role),
            status=status,
            expires_at=_utc_now() + expires_in,
        )
        await self.add(invite)
        return invite


@pytest.fixture()
async def async_engine(tmp_path):
    """File-backed SQLite engine with all tables created.

    A file (rather than ``:memory:``) lets concurrent sessions see the same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def seed(async_engine):
    return Seeder(async_engine)


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        secret_key="test-secret",
        debug=False,
        auth_rate_limit=1_000,
    )


@pytest.fixture()
def app(settings, async_engine):
    """Create a fresh app instance bound to the test database."""
    return create_app(settings=settings, engine=async_engine)


@pytest.fixture()
async def client(app):
    # https so that Secure cookies are sent back by the client
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as client:
        yield client


@pytest.fixture()
def login(client):
    """Log ``email`` in on the shared client and return the response."""

    async def _login(email: str, password: str = TEST_PASSWORD):
        response = await client.post(
            "/api/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        return response

    return _login


@pytest.fixture()
def password() -> str:
    return TEST_PASSWORD
