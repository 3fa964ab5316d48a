"""
Seed script to populate a demo tenant.

Creates:
- One organization with two departments (Quality, Operations)
- One user per organization/department role
- A sample A3 document authored by the Quality member

Users are matched to Appwrite by `appwrite_id`; set DEMO_APPWRITE_PREFIX to
line them up with accounts created in your Appwrite project.

Usage:
    uv run python -m scripts.seed_demo
"""
import asyncio
import os
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db, init_db
from app.features.documents.repository import DocumentRepository
from app.features.organizations.models import (
    Organization,
    Department,
    DepartmentMembership,
    DepartmentRole,
    OrganizationRole,
)
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)

DEMO_ORGANIZATION = "Demo Manufacturing"
DEMO_DEPARTMENTS = ["Quality", "Operations"]
APPWRITE_PREFIX = os.environ.get("DEMO_APPWRITE_PREFIX", "demo")

# (key, display name, organization role, {department: role})
DEMO_USERS = [
    ("owner", "Olivia Owner", OrganizationRole.OWNER, {}),
    ("admin", "Adam Admin", OrganizationRole.ADMIN, {}),
    ("manager", "Mia Manager", OrganizationRole.MEMBER, {"Quality": DepartmentRole.MANAGER}),
    ("member", "Max Member", OrganizationRole.MEMBER, {"Quality": DepartmentRole.MEMBER}),
    ("viewer", "Vera Viewer", OrganizationRole.MEMBER, {
        "Quality": DepartmentRole.VIEWER,
        "Operations": DepartmentRole.VIEWER,
    }),
]


async def seed_organization(db: AsyncSession) -> tuple[Organization, dict[str, Department]]:
    organization = await db.scalar(select(Organization).where(Organization.name == DEMO_ORGANIZATION))
    if organization is None:
        organization = Organization(name=DEMO_ORGANIZATION)
        db.add(organization)
        await db.flush()
        log.info("Created organization %r", DEMO_ORGANIZATION)

    departments: dict[str, Department] = {}
    for name in DEMO_DEPARTMENTS:
        department = await db.scalar(
            select(Department).where(
                Department.organization_id == organization.id,
                Department.name == name,
            )
        )
        if department is None:
            department = Department(organization_id=organization.id, name=name)
            db.add(department)
            await db.flush()
            log.info("Created department %r", name)
        departments[name] = department

    return organization, departments


async def seed_users(
    db: AsyncSession,
    organization: Organization,
    departments: dict[str, Department]
) -> dict[str, User]:
    users: dict[str, User] = {}
    for key, name, org_role, department_roles in DEMO_USERS:
        appwrite_id = f"{APPWRITE_PREFIX}-{key}"
        user = await db.scalar(select(User).where(User.appwrite_id == appwrite_id))
        if user is not None:
            log.debug("User %r already exists, skipping", appwrite_id)
            users[key] = user
            continue

        user = User(
            appwrite_id=appwrite_id,
            email=f"{key}@demo.local",
            name=name,
            organization_id=organization.id,
            organization_role=org_role,
        )
        db.add(user)
        await db.flush()

        for department_name, role in department_roles.items():
            db.add(DepartmentMembership(
                user_id=user.id,
                department_id=departments[department_name].id,
                role=role,
            ))
        log.info("Created user %r (%s)", appwrite_id, org_role.value)
        users[key] = user

    await db.flush()
    return users


async def main():
    """Main function to seed the demo tenant."""
    log.info("Starting demo seeding...")
    await init_db()

    async for db in get_db():
        try:
            organization, departments = await seed_organization(db)
            users = await seed_users(db, organization, departments)

            repository = DocumentRepository(db)
            author = users["member"]
            await repository.create(
                organization_id=organization.id,
                department_id=departments["Quality"].id,
                author_id=author.id,
                title="Reduce Line 3 Scrap Rate",
                description="Scrap on line 3 doubled after the Q3 tooling change.",
            )
            await db.commit()
            log.info("Demo seeding completed successfully!")
        except Exception as e:
            log.error("Error seeding demo data: %s", e, exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
