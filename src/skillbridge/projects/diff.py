"""Project change sets — one diff per edit, applied as one batch.

Editing a project compares the stored required skills and assignments
with the submitted form once. The resulting ProjectChangeSet is both
what the store applies and what the allocation history is written from.

Requirement identity is (skill_id, subskill_id, required_rating), so
re-rating a subskill shows up as one removal plus one addition.
Assignment identity is the user id.

The diff is informational for the history. It never blocks an edit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from skillbridge.models.project import (
    AllocationHistoryEntry,
    AllocationPercentage,
    MemberAllocation,
    Project,
    ProjectAssignment,
    ProjectForm,
)
from skillbridge.models.skill import RequiredSkill


INITIAL_ASSIGNMENT_REASON = "Initial project assignment"
MEMBER_REMOVED_REASON = "Member removed from project"


@dataclass(frozen=True)
class AllocationChange:
    """An existing member whose allocation percentage changed."""
    user_id: str
    previous: AllocationPercentage
    new: AllocationPercentage


@dataclass
class ProjectChangeSet:
    """Everything that differs between a stored project and an edit."""
    skills_added: list[RequiredSkill] = field(default_factory=list)
    skills_removed: list[RequiredSkill] = field(default_factory=list)
    members_added: list[MemberAllocation] = field(default_factory=list)
    members_removed: list[ProjectAssignment] = field(default_factory=list)
    members_changed: list[AllocationChange] = field(default_factory=list)

    @property
    def skills_changed(self) -> bool:
        return bool(self.skills_added or self.skills_removed)

    @property
    def is_empty(self) -> bool:
        return not (
            self.skills_changed
            or self.members_added
            or self.members_removed
            or self.members_changed
        )


def diff_required_skills(
    existing: list[RequiredSkill],
    requested: list[RequiredSkill],
) -> tuple[list[RequiredSkill], list[RequiredSkill]]:
    """Return (added, removed) requirements."""
    existing_keys = {s.diff_key for s in existing}
    requested_keys = {s.diff_key for s in requested}
    added = [s for s in requested if s.diff_key not in existing_keys]
    removed = [s for s in existing if s.diff_key not in requested_keys]
    return added, removed


def diff_assignments(
    existing: list[ProjectAssignment],
    requested: list[MemberAllocation],
) -> tuple[list[MemberAllocation], list[ProjectAssignment], list[AllocationChange]]:
    """Return (added, removed, changed) memberships.

    Added and changed follow the order of the request; removed follows
    the order of the stored assignments.
    """
    current = {a.user_id: a for a in existing}
    requested_ids = {m.user_id for m in requested}

    added: list[MemberAllocation] = []
    changed: list[AllocationChange] = []
    for member in requested:
        old = current.get(member.user_id)
        if old is None:
            added.append(member)
        elif old.allocation_percentage != member.allocation_percentage:
            changed.append(AllocationChange(
                user_id=member.user_id,
                previous=old.allocation_percentage,
                new=member.allocation_percentage,
            ))

    removed = [a for a in existing if a.user_id not in requested_ids]
    return added, removed, changed


def diff_project(
    existing_skills: list[RequiredSkill],
    existing_assignments: list[ProjectAssignment],
    form: ProjectForm,
) -> ProjectChangeSet:
    """Compute the full change set for an edit."""
    skills_added, skills_removed = diff_required_skills(
        existing_skills, form.required_skills,
    )
    members_added, members_removed, members_changed = diff_assignments(
        existing_assignments, form.members,
    )
    return ProjectChangeSet(
        skills_added=skills_added,
        skills_removed=skills_removed,
        members_added=members_added,
        members_removed=members_removed,
        members_changed=members_changed,
    )


def describe_detail_changes(project: Project, form: ProjectForm) -> list[str]:
    """Human-readable list of changed project details."""
    changes: list[str] = []
    if project.name != form.name:
        changes.append(f'Name: "{project.name}" → "{form.name}"')
    if project.description != form.description:
        changes.append("Description updated")
    if project.start_date != form.start_date:
        changes.append("Start date updated")
    if project.end_date != form.end_date:
        changes.append("End date updated")
    return changes


def reapproval_reason(changes: list[str]) -> str:
    if not changes:
        return "Active project updated - Sent back for approval"
    return f"Active project updated ({', '.join(changes)}) - Sent back for approval"


def skills_change_reason(changes: ProjectChangeSet) -> str:
    parts = []
    if changes.skills_added:
        parts.append(f"{len(changes.skills_added)} skills added")
    if changes.skills_removed:
        parts.append(f"{len(changes.skills_removed)} skills removed")
    return f"Required skills updated: {', '.join(parts)}"


class HistoryBuilder:
    """Turns project events into AllocationHistoryEntry rows.

    Usage:
        builder = HistoryBuilder(project_id, changed_by, new_id, now)
        rows = builder.for_change_set(changes)
    """

    def __init__(
        self,
        project_id: str,
        changed_by: str,
        id_factory: Callable[[], str],
        timestamp: Optional[datetime] = None,
    ) -> None:
        self._project_id = project_id
        self._changed_by = changed_by
        self._new_id = id_factory
        self._timestamp = timestamp

    def entry(
        self,
        user_id: str,
        previous: Optional[int],
        new: int,
        reason: str,
    ) -> AllocationHistoryEntry:
        return AllocationHistoryEntry(
            id=self._new_id(),
            project_id=self._project_id,
            user_id=user_id,
            previous_allocation=previous,
            new_allocation=new,
            changed_by=self._changed_by,
            change_reason=reason,
            created_at=self._timestamp,
        )

    def initial_assignments(
        self, members: list[MemberAllocation],
    ) -> list[AllocationHistoryEntry]:
        return [
            self.entry(m.user_id, None, int(m.allocation_percentage), INITIAL_ASSIGNMENT_REASON)
            for m in members
        ]

    def reapproval(self, detail_changes: list[str]) -> AllocationHistoryEntry:
        return self.entry(self._changed_by, 0, 0, reapproval_reason(detail_changes))

    def for_change_set(self, changes: ProjectChangeSet) -> list[AllocationHistoryEntry]:
        """History rows for member additions, reallocations, removals, skills."""
        rows: list[AllocationHistoryEntry] = []
        for m in changes.members_added:
            pct = int(m.allocation_percentage)
            rows.append(self.entry(
                m.user_id, None, pct,
                f"New member assigned with {pct}% allocation",
            ))
        for c in changes.members_changed:
            rows.append(self.entry(
                c.user_id, int(c.previous), int(c.new),
                f"Allocation updated: {int(c.previous)}% → {int(c.new)}%",
            ))
        for a in changes.members_removed:
            rows.append(self.entry(
                a.user_id, int(a.allocation_percentage), 0, MEMBER_REMOVED_REASON,
            ))
        if changes.skills_changed:
            rows.append(self.entry(
                self._changed_by, 0, 0, skills_change_reason(changes),
            ))
        return rows
