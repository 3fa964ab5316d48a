"""
Department membership lookups.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.organizations.models import DepartmentMembership


class MembershipResolver:
    """
    Read-through access to a user's department memberships.

    Meant to live for one request: `membership_in` answers are cached on the
    instance, including misses.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self._cache: dict[tuple[str, str], DepartmentMembership | None] = {}

    async def memberships_of(self, user_id: str) -> list[DepartmentMembership]:
        result = await self.db.execute(
            select(DepartmentMembership)
            .where(DepartmentMembership.user_id == user_id)
            .order_by(DepartmentMembership.created_at)
        )
        memberships = list(result.scalars().all())
        for membership in memberships:
            self._cache[(user_id, membership.department_id)] = membership
        return memberships

    async def membership_in(self, user_id: str, department_id: str) -> DepartmentMembership | None:
        key = (user_id, department_id)
        if key not in self._cache:
            self._cache[key] = await self.db.scalar(
                select(DepartmentMembership).where(
                    DepartmentMembership.user_id == user_id,
                    DepartmentMembership.department_id == department_id,
                )
            )
        return self._cache[key]
