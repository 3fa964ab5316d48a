"""Pytest configuration and fixtures.

Every test gets a fresh in-memory SQLite database. Fixtures hand out plain
ids rather than ORM objects: a gateway rollback expires everything in the
session, and touching an expired attribute outside a query fails under
asyncio.
"""
from types import SimpleNamespace

import pytest
from sqlalchemy import select, func
from sqlalchemy.pool import StaticPool

from app.core.database.engine import build_engine, build_session_factory, init_db
from app.core.rate_limit import FixedWindowRateLimiter
from app.features.documents.repository import DocumentRepository
from app.features.documents.service import DocumentGateway
from app.features.organizations.models import (
    Organization,
    Department,
    DepartmentMembership,
    DepartmentRole,
    OrganizationRole,
)
from app.features.permissions.models import AuditLog
from app.features.users.dependencies import Principal
from app.features.users.models import User


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
async def engine():
    test_engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(bind=test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return FixedWindowRateLimiter(limit=20, window_seconds=60, clock=clock)


@pytest.fixture
def gateway(db, rate_limiter):
    return DocumentGateway(db, rate_limiter=rate_limiter)


def _principal(user: User) -> Principal:
    return Principal(
        user_id=user.id,
        organization_id=user.organization_id,
        organization_role=user.organization_role,
    )


@pytest.fixture
async def tenant(session_factory):
    """
    Two organizations.

    Acme has departments A and B and users with every role; Globex has one
    department and an owner. Returns ids and principals only.
    """
    async with session_factory() as session:
        acme = Organization(name="Acme")
        globex = Organization(name="Globex")
        session.add_all([acme, globex])
        await session.flush()

        dept_a = Department(organization_id=acme.id, name="Quality")
        dept_b = Department(organization_id=acme.id, name="Operations")
        dept_g = Department(organization_id=globex.id, name="Quality")
        session.add_all([dept_a, dept_b, dept_g])
        await session.flush()

        def user(key, org, role):
            return User(
                appwrite_id=f"aw-{key}",
                email=f"{key}@example.com",
                name=key.title(),
                organization_id=org.id,
                organization_role=role,
            )

        users = {
            "owner": user("owner", acme, OrganizationRole.OWNER),
            "admin": user("admin", acme, OrganizationRole.ADMIN),
            "manager_a": user("manager_a", acme, OrganizationRole.MEMBER),
            "member_a": user("member_a", acme, OrganizationRole.MEMBER),
            "viewer_a": user("viewer_a", acme, OrganizationRole.MEMBER),
            "author": user("author", acme, OrganizationRole.MEMBER),
            "outsider": user("outsider", acme, OrganizationRole.MEMBER),
            "globex_owner": user("globex_owner", globex, OrganizationRole.OWNER),
        }
        session.add_all(users.values())
        await session.flush()

        session.add_all([
            DepartmentMembership(user_id=users["manager_a"].id, department_id=dept_a.id, role=DepartmentRole.MANAGER),
            DepartmentMembership(user_id=users["member_a"].id, department_id=dept_a.id, role=DepartmentRole.MEMBER),
            DepartmentMembership(user_id=users["viewer_a"].id, department_id=dept_a.id, role=DepartmentRole.VIEWER),
            DepartmentMembership(user_id=users["globex_owner"].id, department_id=dept_g.id, role=DepartmentRole.MANAGER),
        ])

        repository = DocumentRepository(session)
        doc_a = await repository.create(
            organization_id=acme.id,
            department_id=dept_a.id,
            author_id=users["author"].id,
            title="Reduce Scrap",
            description="Line 3 scrap doubled",
        )
        doc_b = await repository.create(
            organization_id=acme.id,
            department_id=dept_b.id,
            author_id=users["owner"].id,
            title="Shorten Changeover",
        )
        doc_g = await repository.create(
            organization_id=globex.id,
            department_id=dept_g.id,
            author_id=users["globex_owner"].id,
            title="Globex Secret Plan",
        )
        await session.commit()

        return SimpleNamespace(
            acme_id=acme.id,
            globex_id=globex.id,
            dept_a=dept_a.id,
            dept_b=dept_b.id,
            dept_g=dept_g.id,
            doc_a=doc_a.id,
            doc_b=doc_b.id,
            doc_g=doc_g.id,
            user_ids={key: u.id for key, u in users.items()},
            principals={key: _principal(u) for key, u in users.items()},
        )


async def count_audit(session, **filters) -> int:
    stmt = select(func.count()).select_from(AuditLog)
    for key, value in filters.items():
        stmt = stmt.where(getattr(AuditLog, key) == value)
    return await session.scalar(stmt)


@pytest.fixture
def audit_count(db):
    async def _count(**filters) -> int:
        return await count_audit(db, **filters)
    return _count
