"""
Pydantic schemas for organizations and departments.
"""
from pydantic import BaseModel, ConfigDict

from app.features.organizations.models import DepartmentRole


class DepartmentPublic(BaseModel):
    id: str
    organization_id: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class MembershipResponse(BaseModel):
    """A department membership of the current user."""
    department_id: str
    role: DepartmentRole
    department: DepartmentPublic

    model_config = ConfigDict(from_attributes=True)
