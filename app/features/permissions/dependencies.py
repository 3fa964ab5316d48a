"""
Permission resolution for A3 documents.

Implements:
- `can`: the single decision point for document actions
- `can_create_in`: who may file a new document under a department
- FastAPI dependency for organization-admin-only routes

`can` and `can_create_in` are pure: callers fetch the document and the
principal's membership in the document's department and hand them in.
"""
import enum
from typing import Annotated, Optional
from fastapi import Depends

from app.core.errors import NotFound
from app.features.documents.models import A3Document
from app.features.organizations.models import Department, DepartmentMembership, DepartmentRole
from app.features.users.dependencies import Principal, get_current_principal
from app.utils import get_logger


log = get_logger(__name__)


class Action(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    ARCHIVE = "archive"


# Authorship alone never grants DELETE; see DESIGN.md.
AUTHOR_GRANTS = frozenset({Action.VIEW, Action.EDIT, Action.ARCHIVE})

DEPARTMENT_GRANTS: dict[Optional[DepartmentRole], frozenset[Action]] = {
    DepartmentRole.MANAGER: frozenset({Action.VIEW, Action.EDIT, Action.ARCHIVE, Action.DELETE}),
    DepartmentRole.MEMBER: frozenset({Action.VIEW, Action.EDIT}),
    DepartmentRole.VIEWER: frozenset({Action.VIEW}),
    None: frozenset({Action.VIEW}),
}

CREATOR_ROLES = frozenset({DepartmentRole.MANAGER, DepartmentRole.MEMBER})


def _department_role(
    membership: Optional[DepartmentMembership],
    principal: Principal,
    department_id: str
) -> Optional[DepartmentRole]:
    # A membership for someone else or another department grants nothing.
    if membership is None:
        return None
    if membership.user_id != principal.user_id or membership.department_id != department_id:
        return None
    return DepartmentRole(membership.role)


def can(
    action: Action,
    principal: Principal,
    document: A3Document,
    membership: Optional[DepartmentMembership] = None
) -> bool:
    """
    Decide whether `principal` may perform `action` on `document`.

    Rules, first match wins:
    1. Different organization: deny, whatever the role.
    2. Organization OWNER or ADMIN: allow.
    3. Author of the document: allow VIEW, EDIT, ARCHIVE.
    4. Role in the document's department: MANAGER all actions, MEMBER
       VIEW/EDIT, VIEWER or no membership VIEW.
    5. Deny.

    Args:
        action: Requested action
        principal: Authenticated principal
        document: Document as fetched for this operation
        membership: Principal's membership in `document.department_id`, if any

    Returns:
        True if allowed
    """
    if document.organization_id != principal.organization_id:
        log.debug(
            "Denied %s on %s: tenant mismatch for user %s",
            action.value, document.id, principal.user_id,
        )
        return False

    if principal.is_org_admin:
        return True

    if document.author_id == principal.user_id and action in AUTHOR_GRANTS:
        return True

    role = _department_role(membership, principal, document.department_id)
    if action in DEPARTMENT_GRANTS[role]:
        return True

    log.debug(
        "Denied %s on %s for user %s (department role %s)",
        action.value, document.id, principal.user_id, role.value if role else None,
    )
    return False


def permissions_for(
    principal: Principal,
    document: A3Document,
    membership: Optional[DepartmentMembership] = None
) -> dict[str, bool]:
    """All action flags for one document, keyed by action name."""
    return {action.value: can(action, principal, document, membership) for action in Action}


def can_create_in(
    principal: Principal,
    department: Department,
    membership: Optional[DepartmentMembership] = None
) -> bool:
    """
    Whether `principal` may file a new document under `department`.

    Requires the department to be in the principal's organization, and the
    principal to be an organization OWNER/ADMIN or a MANAGER/MEMBER of it.
    """
    if department.organization_id != principal.organization_id:
        return False
    if principal.is_org_admin:
        return True
    return _department_role(membership, principal, department.id) in CREATOR_ROLES


async def require_org_admin(
    principal: Annotated[Principal, Depends(get_current_principal)]
) -> Principal:
    """
    FastAPI dependency for organization-admin routes.

    Non-admins get the same NotFound as any hidden resource.
    """
    if not principal.is_org_admin:
        raise NotFound()
    return principal
