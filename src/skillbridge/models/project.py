"""Project data models — projects, assignments, members, and allocation history.

Project lifecycle: AWAITING_APPROVAL → ACTIVE → COMPLETED / ON_HOLD
                   AWAITING_APPROVAL → REJECTED
Editing an ACTIVE project sends it back to AWAITING_APPROVAL.

An employee's current total allocation is the sum of allocation
percentages over their assignments on projects that are ACTIVE or
AWAITING_APPROVAL. Available capacity is 100 minus that sum. The sum
is not capped at 100 by the store, so capacity can be negative.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from skillbridge.models.skill import RequiredSkill


FULL_CAPACITY = 100


class ProjectStatus(str, enum.Enum):
    """Lifecycle state of a project."""
    AWAITING_APPROVAL = "awaiting_approval"
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    REJECTED = "rejected"

    @property
    def counts_toward_allocation(self) -> bool:
        return self in (ProjectStatus.ACTIVE, ProjectStatus.AWAITING_APPROVAL)


class AllocationPercentage(int, enum.Enum):
    """Share of an employee's capacity committed to one project.

    Closed set: allocations are assigned in quarters only.
    """
    QUARTER = 25
    HALF = 50
    THREE_QUARTERS = 75
    FULL = 100


def available_capacity(total_allocation: int) -> int:
    """Capacity left after the given total allocation. Not clamped."""
    return FULL_CAPACITY - total_allocation


@dataclass(frozen=True)
class ProjectAssignment:
    """A stored assignment row: one user on one project."""
    project_id: str
    user_id: str
    allocation_percentage: AllocationPercentage
    assigned_by: Optional[str] = None


@dataclass(frozen=True)
class ProjectMember:
    """An assignment joined with the member's profile and capacity."""
    user_id: str
    full_name: str
    email: str
    role: str
    allocation_percentage: AllocationPercentage
    current_total_allocation: int
    available_capacity: int


@dataclass(frozen=True)
class MemberAllocation:
    """A requested membership in a project form."""
    user_id: str
    allocation_percentage: AllocationPercentage


@dataclass
class Project:
    """A staffing project with its required skills and team."""
    id: str
    name: str
    description: str
    created_by: str
    status: ProjectStatus = ProjectStatus.AWAITING_APPROVAL
    tech_lead_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    members: list[ProjectMember] = field(default_factory=list)
    required_skills: list[RequiredSkill] = field(default_factory=list)
    # members and required_skills are populated on read; the store
    # keeps them in their own tables.

    def to_row(self) -> dict[str, Any]:
        """Serialise the project's own columns (no members or skills)."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_by": self.created_by,
            "status": self.status.value,
            "tech_lead_id": self.tech_lead_id,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "approved_by": self.approved_by,
            "approved_at": _iso(self.approved_at),
            "rejected_by": self.rejected_by,
            "rejected_at": _iso(self.rejected_at),
            "rejection_reason": self.rejection_reason,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Project:
        return cls(
            id=row["id"],
            name=row.get("name") or "",
            description=row.get("description") or "",
            created_by=row.get("created_by") or "",
            status=ProjectStatus(row.get("status", ProjectStatus.AWAITING_APPROVAL.value)),
            tech_lead_id=row.get("tech_lead_id"),
            start_date=_parse_date(row.get("start_date")),
            end_date=_parse_date(row.get("end_date")),
            created_at=_parse_datetime(row.get("created_at")),
            updated_at=_parse_datetime(row.get("updated_at")),
            approved_by=row.get("approved_by"),
            approved_at=_parse_datetime(row.get("approved_at")),
            rejected_by=row.get("rejected_by"),
            rejected_at=_parse_datetime(row.get("rejected_at")),
            rejection_reason=row.get("rejection_reason"),
        )


@dataclass(frozen=True)
class AllocationHistoryEntry:
    """One audit row describing a change to a project's staffing.

    previous_allocation is None for a first assignment. Project-level
    changes (details, required skills) are recorded against the acting
    user with previous and new allocation both 0.
    """
    id: str
    project_id: str
    user_id: str
    previous_allocation: Optional[int]
    new_allocation: int
    changed_by: str
    change_reason: str = ""
    created_at: Optional[datetime] = None

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "previous_allocation": self.previous_allocation,
            "new_allocation": self.new_allocation,
            "changed_by": self.changed_by,
            "change_reason": self.change_reason,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> AllocationHistoryEntry:
        return cls(
            id=str(row["id"]),
            project_id=row["project_id"],
            user_id=row["user_id"],
            previous_allocation=row.get("previous_allocation"),
            new_allocation=row.get("new_allocation") or 0,
            changed_by=row.get("changed_by") or "",
            change_reason=row.get("change_reason") or "",
            created_at=_parse_datetime(row.get("created_at")),
        )


@dataclass(frozen=True)
class AllocationHistoryView:
    """A history entry with user names resolved for display."""
    entry: AllocationHistoryEntry
    full_name: str
    changed_by_name: str


@dataclass
class ProjectForm:
    """Editable project fields as submitted by the creation wizard."""
    name: str
    description: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    required_skills: list[RequiredSkill] = field(default_factory=list)
    members: list[MemberAllocation] = field(default_factory=list)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)
