"""Resource views — per-employee allocation summaries across projects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class ResourceAllocation:
    """One candidate's load across all projects."""
    user_id: str
    full_name: str
    email: str
    role: str
    total_allocation: int
    available_capacity: int
    active_projects_count: int


@dataclass(frozen=True)
class UserProject:
    """A project the user currently counts against (active or awaiting)."""
    project_id: str
    project_name: str
    project_status: str
    allocation_percentage: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class ProjectHistoryItem:
    """A history row about the user, joined with its project."""
    project_id: str
    project_name: str
    allocation_percentage: int
    assigned_at: Optional[datetime]
    changed_by_name: str
    change_reason: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    project_status: Optional[str] = None
