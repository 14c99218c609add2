"""Tests for role-based access decisions."""

import pytest

from skillbridge import access
from skillbridge.models.profile import Role
from skillbridge.models.project import ProjectStatus


class TestCreate:
    @pytest.mark.parametrize("role,allowed", [
        (Role.EMPLOYEE, False),
        (Role.TECH_LEAD, True),
        (Role.MANAGEMENT, True),
        (Role.ADMIN, True),
    ])
    def test_create(self, role: Role, allowed: bool) -> None:
        assert access.can_create_project(role) is allowed


class TestEdit:
    @pytest.mark.parametrize("status", [ProjectStatus.AWAITING_APPROVAL, ProjectStatus.ACTIVE])
    def test_editable_statuses(self, status: ProjectStatus) -> None:
        assert access.can_edit_project(Role.TECH_LEAD, status)
        assert not access.can_edit_project(Role.EMPLOYEE, status)

    @pytest.mark.parametrize("status", [
        ProjectStatus.COMPLETED, ProjectStatus.ON_HOLD, ProjectStatus.REJECTED,
    ])
    def test_closed_statuses(self, status: ProjectStatus) -> None:
        assert not access.can_edit_project(Role.ADMIN, status)


class TestApprove:
    def test_only_management_and_admin(self) -> None:
        awaiting = ProjectStatus.AWAITING_APPROVAL
        assert access.can_approve_project(Role.MANAGEMENT, awaiting)
        assert access.can_approve_project(Role.ADMIN, awaiting)
        assert not access.can_approve_project(Role.TECH_LEAD, awaiting)
        assert not access.can_approve_project(Role.EMPLOYEE, awaiting)

    def test_only_awaiting_projects(self) -> None:
        assert not access.can_approve_project(Role.ADMIN, ProjectStatus.ACTIVE)


class TestDeleteAndCandidates:
    def test_delete_admin_only(self) -> None:
        assert [r for r in Role if access.can_delete_project(r)] == [Role.ADMIN]

    def test_match_candidates(self) -> None:
        assert [r for r in Role if access.is_match_candidate(r)] == [Role.EMPLOYEE, Role.TECH_LEAD]


class TestRequire:
    def test_denied_message(self) -> None:
        with pytest.raises(access.AccessDenied, match="Role 'employee' may not create projects"):
            access.require(False, "create projects", Role.EMPLOYEE)

    def test_allowed_is_silent(self) -> None:
        access.require(True, "create projects", Role.ADMIN)

    def test_unknown_role_raises(self) -> None:
        with pytest.raises(AssertionError, match="No access decision"):
            access.can_create_project("contractor")  # type: ignore[arg-type]
