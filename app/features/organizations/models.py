"""
Organization models.

Organizations are the tenant boundary: every user, department and A3
document belongs to exactly one of them. Departments scope role grants more
finely than the organization-level role on the user.
"""
from sqlalchemy import String, ForeignKey, Boolean, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
import enum

from app.core.database.base import Base, TimestampMixin, generate_ulid


class OrganizationRole(str, enum.Enum):
    """Organization-wide role carried by every principal."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class DepartmentRole(str, enum.Enum):
    """Role a user holds inside one department."""
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"


class Organization(Base, TimestampMixin):
    """Tenant root."""
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    departments: Mapped[list["Department"]] = relationship(
        "Department",
        back_populates="organization",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"


class Department(Base, TimestampMixin):
    """
    Sub-unit of an organization.

    Documents are filed under a department; department memberships decide
    who beyond the author and the organization admins may edit them.
    """
    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="departments",
        lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_departments_org_name"),
    )

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, org_id={self.organization_id}, name={self.name!r})>"


class DepartmentMembership(Base, TimestampMixin):
    """A user's role in one department. At most one row per (user, department)."""
    __tablename__ = "department_memberships"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    department_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    role: Mapped[DepartmentRole] = mapped_column(
        SQLEnum(DepartmentRole),
        default=DepartmentRole.MEMBER,
        nullable=False
    )

    department: Mapped["Department"] = relationship("Department", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "department_id", name="uq_department_memberships_user_dept"),
    )

    def __repr__(self) -> str:
        return f"<DepartmentMembership(user_id={self.user_id}, dept_id={self.department_id}, role={self.role})>"
