"""Role-based access decisions for staffing operations.

Every decision branches over the whole Role enum. Adding a role
without deciding its access raises at the first check rather than
silently denying or granting.

    create project     tech_lead, management, admin
    edit project       tech_lead, management, admin   (awaiting_approval or active)
    approve / reject   management, admin              (awaiting_approval only)
    delete project     admin
    match candidate    employee, tech_lead
"""

from __future__ import annotations

from skillbridge.models.profile import Role
from skillbridge.models.project import ProjectStatus


EDITABLE_STATUSES = (ProjectStatus.AWAITING_APPROVAL, ProjectStatus.ACTIVE)


class AccessDenied(Exception):
    """The acting user's role does not permit the operation."""


def _unhandled(role: Role) -> AssertionError:
    return AssertionError(f"No access decision for role '{role}'")


def can_create_project(role: Role) -> bool:
    if role in (Role.TECH_LEAD, Role.MANAGEMENT, Role.ADMIN):
        return True
    if role == Role.EMPLOYEE:
        return False
    raise _unhandled(role)


def can_edit_project(role: Role, status: ProjectStatus) -> bool:
    if role in (Role.TECH_LEAD, Role.MANAGEMENT, Role.ADMIN):
        return status in EDITABLE_STATUSES
    if role == Role.EMPLOYEE:
        return False
    raise _unhandled(role)


def can_approve_project(role: Role, status: ProjectStatus) -> bool:
    if role in (Role.MANAGEMENT, Role.ADMIN):
        return status == ProjectStatus.AWAITING_APPROVAL
    if role in (Role.EMPLOYEE, Role.TECH_LEAD):
        return False
    raise _unhandled(role)


def can_delete_project(role: Role) -> bool:
    if role == Role.ADMIN:
        return True
    if role in (Role.EMPLOYEE, Role.TECH_LEAD, Role.MANAGEMENT):
        return False
    raise _unhandled(role)


def is_match_candidate(role: Role) -> bool:
    if role in (Role.EMPLOYEE, Role.TECH_LEAD):
        return True
    if role in (Role.MANAGEMENT, Role.ADMIN):
        return False
    raise _unhandled(role)


def require(allowed: bool, action: str, role: Role) -> None:
    """Raise AccessDenied unless allowed."""
    if not allowed:
        raise AccessDenied(f"Role '{role.value}' may not {action}")
