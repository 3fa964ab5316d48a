import pytest

from app.features.documents.models import A3Document
from app.features.organizations.models import (
    Department,
    DepartmentMembership,
    DepartmentRole,
    OrganizationRole,
)
from app.features.permissions.dependencies import Action, can, can_create_in, permissions_for
from app.features.users.dependencies import Principal


ORG = "01ORGACME"
OTHER_ORG = "01ORGGLOBEX"
DEPT_A = "01DEPTA"
DEPT_B = "01DEPTB"


def principal(user_id="u-1", org=ORG, role=OrganizationRole.MEMBER):
    return Principal(user_id=user_id, organization_id=org, organization_role=role)


def document(org=ORG, dept=DEPT_A, author="someone-else"):
    return A3Document(id="doc-1", organization_id=org, department_id=dept, author_id=author, title="T")


def membership(user_id="u-1", dept=DEPT_A, role=DepartmentRole.MEMBER):
    return DepartmentMembership(user_id=user_id, department_id=dept, role=role)


@pytest.mark.parametrize("org_role", list(OrganizationRole))
@pytest.mark.parametrize("action", list(Action))
def test_cross_tenant_is_always_denied(org_role, action):
    p = principal(role=org_role)
    doc = document(org=OTHER_ORG, author=p.user_id)
    manager = membership(dept=DEPT_A, role=DepartmentRole.MANAGER)

    assert can(action, p, doc, manager) is False


@pytest.mark.parametrize("org_role", [OrganizationRole.OWNER, OrganizationRole.ADMIN])
@pytest.mark.parametrize("action", list(Action))
def test_org_admins_may_do_anything_in_their_tenant(org_role, action):
    assert can(action, principal(role=org_role), document()) is True


def test_author_can_view_edit_archive_but_not_delete():
    p = principal()
    doc = document(author=p.user_id)

    assert can(Action.VIEW, p, doc) is True
    assert can(Action.EDIT, p, doc) is True
    assert can(Action.ARCHIVE, p, doc) is True
    assert can(Action.DELETE, p, doc) is False


def test_author_who_is_also_manager_can_delete():
    p = principal()
    doc = document(author=p.user_id)

    assert can(Action.DELETE, p, doc, membership(role=DepartmentRole.MANAGER)) is True


@pytest.mark.parametrize("role, allowed", [
    (DepartmentRole.MANAGER, {Action.VIEW, Action.EDIT, Action.ARCHIVE, Action.DELETE}),
    (DepartmentRole.MEMBER, {Action.VIEW, Action.EDIT}),
    (DepartmentRole.VIEWER, {Action.VIEW}),
    (None, {Action.VIEW}),
])
def test_department_role_grants(role, allowed):
    m = membership(role=role) if role else None
    granted = {action for action in Action if can(action, principal(), document(), m)}

    assert granted == allowed


def test_membership_in_other_department_grants_nothing_extra():
    # MANAGER in A, document filed under B
    m = membership(dept=DEPT_A, role=DepartmentRole.MANAGER)
    doc = document(dept=DEPT_B)

    assert can(Action.VIEW, principal(), doc, m) is True
    assert can(Action.EDIT, principal(), doc, m) is False
    assert can(Action.DELETE, principal(), doc, m) is False


def test_membership_of_another_user_is_ignored():
    m = membership(user_id="u-2", role=DepartmentRole.MANAGER)

    assert can(Action.EDIT, principal(user_id="u-1"), document(), m) is False


def test_permissions_for_lists_every_action():
    flags = permissions_for(principal(), document(), membership(role=DepartmentRole.MEMBER))

    assert flags == {"view": True, "edit": True, "delete": False, "archive": False}


class TestCanCreateIn:

    def department(self, org=ORG):
        return Department(id=DEPT_A, organization_id=org, name="Quality")

    def test_other_tenant_department_is_denied_even_for_owner(self):
        p = principal(role=OrganizationRole.OWNER)
        assert can_create_in(p, self.department(org=OTHER_ORG)) is False

    def test_org_admin_without_membership(self):
        assert can_create_in(principal(role=OrganizationRole.ADMIN), self.department()) is True

    @pytest.mark.parametrize("role, expected", [
        (DepartmentRole.MANAGER, True),
        (DepartmentRole.MEMBER, True),
        (DepartmentRole.VIEWER, False),
    ])
    def test_department_roles(self, role, expected):
        assert can_create_in(principal(), self.department(), membership(role=role)) is expected

    def test_no_membership(self):
        assert can_create_in(principal(), self.department(), None) is False
