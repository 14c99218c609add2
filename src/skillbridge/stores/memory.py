"""In-memory backend — process-local tables for every store contract.

Used by tests, the CLI, and any embedding that does not talk to the
hosted API. When constructed with a StateStore, every mutation writes a
full snapshot so the tables survive restarts. A mutation whose
snapshot cannot be written is undone.

Reads may run concurrently (the matcher fans out per candidate); all
table access goes through one re-entrant lock.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Optional

from skillbridge.access import is_match_candidate
from skillbridge.errors import StoreError
from skillbridge.models.profile import Profile, Role
from skillbridge.models.project import (
    AllocationHistoryEntry,
    AllocationPercentage,
    Project,
    ProjectAssignment,
)
from skillbridge.models.skill import (
    EmployeeRating,
    RatingLevel,
    RatingStatus,
    RequiredSkill,
    Skill,
    Subskill,
)
from skillbridge.persistence.state_store import StateStore
from skillbridge.projects.diff import ProjectChangeSet
from skillbridge.stores.base import StaffingBackend


logger = logging.getLogger(__name__)

CANDIDATE_ROLES = tuple(r for r in Role if is_match_candidate(r))


class InMemoryBackend(StaffingBackend):
    """Dictionary-backed implementation of all stores."""

    name = "memory"

    def __init__(self, state_store: Optional[StateStore] = None) -> None:
        self._lock = threading.RLock()
        self._state_store = state_store
        self._profiles: dict[str, Profile] = {}
        self._skills: dict[str, Skill] = {}
        self._subskills: dict[str, Subskill] = {}
        # (user_id, subskill_id) -> rating
        self._ratings: dict[tuple[str, str], EmployeeRating] = {}
        self._projects: dict[str, Project] = {}
        self._required_skills: dict[str, list[RequiredSkill]] = {}
        self._assignments: dict[str, list[ProjectAssignment]] = {}
        self._history: list[AllocationHistoryEntry] = []

        if state_store is not None and state_store.exists():
            self.restore(state_store.load())

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def list_active_candidates(self) -> list[Profile]:
        with self._lock:
            return [
                p for p in self._profiles.values()
                if p.is_active and p.role in CANDIDATE_ROLES
            ]

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        with self._lock:
            return {
                uid: self._profiles[uid]
                for uid in user_ids if uid in self._profiles
            }

    def list_profiles(self) -> list[Profile]:
        with self._lock:
            return list(self._profiles.values())

    def save_profile(self, profile: Profile) -> None:
        with self._writing():
            self._profiles[profile.user_id] = profile

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_skills(self) -> list[Skill]:
        with self._lock:
            return list(self._skills.values())

    def list_subskills(self, skill_id: Optional[str] = None) -> list[Subskill]:
        with self._lock:
            return [
                s for s in self._subskills.values()
                if skill_id is None or s.skill_id == skill_id
            ]

    def save_skill(self, skill: Skill) -> None:
        with self._writing():
            self._skills[skill.id] = skill

    def save_subskill(self, subskill: Subskill) -> None:
        with self._writing():
            if subskill.skill_id not in self._skills:
                raise ValueError(f"Unknown skill: {subskill.skill_id}")
            self._subskills[subskill.id] = subskill

    # ------------------------------------------------------------------
    # Ratings
    # ------------------------------------------------------------------

    def get_approved_ratings(self, user_id: str) -> list[EmployeeRating]:
        with self._lock:
            return [
                r for (uid, _), r in self._ratings.items()
                if uid == user_id and r.is_approved
            ]

    def save_rating(self, rating: EmployeeRating) -> None:
        with self._writing():
            self._ratings[(rating.user_id, rating.subskill_id)] = rating

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def get_total_allocation(self, user_id: str) -> int:
        with self._lock:
            total = 0
            for project_id, rows in self._assignments.items():
                project = self._projects.get(project_id)
                if project is None or not project.status.counts_toward_allocation:
                    continue
                total += sum(
                    int(a.allocation_percentage) for a in rows if a.user_id == user_id
                )
            return total

    def get_user_assignments(self, user_id: str) -> list[ProjectAssignment]:
        with self._lock:
            return [
                a for rows in self._assignments.values()
                for a in rows if a.user_id == user_id
            ]

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def insert_project(
        self,
        project: Project,
        required_skills: list[RequiredSkill],
        assignments: list[ProjectAssignment],
    ) -> None:
        with self._writing():
            if project.id in self._projects:
                raise ValueError(f"Duplicate project ID: {project.id}")
            self._projects[project.id] = project
            self._required_skills[project.id] = list(required_skills)
            self._assignments[project.id] = list(assignments)

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._lock:
            return self._projects.get(project_id)

    def list_projects(self) -> list[Project]:
        with self._lock:
            epoch = datetime.min.replace(tzinfo=timezone.utc)
            return sorted(
                self._projects.values(),
                key=lambda p: p.created_at or epoch,
                reverse=True,
            )

    def update_project(self, project: Project) -> None:
        with self._writing():
            if project.id not in self._projects:
                raise ValueError(f"Project not found: {project.id}")
            self._projects[project.id] = project

    def delete_project(self, project_id: str) -> None:
        with self._writing():
            self._assignments.pop(project_id, None)
            self._required_skills.pop(project_id, None)
            self._history = [h for h in self._history if h.project_id != project_id]
            self._projects.pop(project_id, None)

    def get_required_skills(self, project_id: str) -> list[RequiredSkill]:
        with self._lock:
            return list(self._required_skills.get(project_id, []))

    def get_assignments(self, project_id: str) -> list[ProjectAssignment]:
        with self._lock:
            return list(self._assignments.get(project_id, []))

    def apply_changes(
        self,
        project_id: str,
        changes: ProjectChangeSet,
        assigned_by: str,
    ) -> None:
        with self._writing():
            removed_keys = {s.diff_key for s in changes.skills_removed}
            skills = [
                s for s in self._required_skills.get(project_id, [])
                if s.diff_key not in removed_keys
            ]
            skills.extend(changes.skills_added)
            self._required_skills[project_id] = skills

            removed_users = {a.user_id for a in changes.members_removed}
            updated = {c.user_id: c.new for c in changes.members_changed}
            rows: list[ProjectAssignment] = []
            for a in self._assignments.get(project_id, []):
                if a.user_id in removed_users:
                    continue
                if a.user_id in updated:
                    a = ProjectAssignment(
                        project_id=project_id,
                        user_id=a.user_id,
                        allocation_percentage=updated[a.user_id],
                        assigned_by=assigned_by,
                    )
                rows.append(a)
            for m in changes.members_added:
                rows.append(ProjectAssignment(
                    project_id=project_id,
                    user_id=m.user_id,
                    allocation_percentage=m.allocation_percentage,
                    assigned_by=assigned_by,
                ))
            self._assignments[project_id] = rows

    def insert_history(self, entries: list[AllocationHistoryEntry]) -> None:
        if not entries:
            return
        with self._writing():
            self._history.extend(entries)

    def get_history(self, project_id: str) -> list[AllocationHistoryEntry]:
        with self._lock:
            return _newest_first(h for h in self._history if h.project_id == project_id)

    def get_user_history(self, user_id: str) -> list[AllocationHistoryEntry]:
        with self._lock:
            return _newest_first(h for h in self._history if h.user_id == user_id)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Serialise every table to plain JSON-compatible data."""
        with self._lock:
            return {
                "profiles": [p.to_dict() for p in self._profiles.values()],
                "skills": [{"id": s.id, "name": s.name} for s in self._skills.values()],
                "subskills": [
                    {"id": s.id, "skill_id": s.skill_id, "name": s.name}
                    for s in self._subskills.values()
                ],
                "ratings": [
                    {
                        "user_id": r.user_id,
                        "skill_id": r.skill_id,
                        "subskill_id": r.subskill_id,
                        "rating": r.rating.value,
                        "status": r.status.value,
                    }
                    for r in self._ratings.values()
                ],
                "projects": [p.to_row() for p in self._projects.values()],
                "required_skills": {
                    pid: [s.to_dict() for s in rows]
                    for pid, rows in self._required_skills.items()
                },
                "assignments": {
                    pid: [
                        {
                            "user_id": a.user_id,
                            "allocation_percentage": int(a.allocation_percentage),
                            "assigned_by": a.assigned_by,
                        }
                        for a in rows
                    ]
                    for pid, rows in self._assignments.items()
                },
                "history": [h.to_row() for h in self._history],
            }

    def restore(self, data: dict[str, Any]) -> None:
        """Replace all tables with the contents of a snapshot."""
        with self._lock:
            self._profiles = {
                p["user_id"]: Profile.from_dict(p) for p in data.get("profiles", [])
            }
            self._skills = {
                s["id"]: Skill(id=s["id"], name=s["name"]) for s in data.get("skills", [])
            }
            self._subskills = {
                s["id"]: Subskill(id=s["id"], skill_id=s["skill_id"], name=s["name"])
                for s in data.get("subskills", [])
            }
            self._ratings = {}
            for r in data.get("ratings", []):
                rating = EmployeeRating(
                    user_id=r["user_id"],
                    skill_id=r["skill_id"],
                    subskill_id=r["subskill_id"],
                    rating=RatingLevel(r["rating"]),
                    status=RatingStatus(r.get("status", RatingStatus.APPROVED.value)),
                )
                self._ratings[(rating.user_id, rating.subskill_id)] = rating
            self._projects = {
                p["id"]: Project.from_row(p) for p in data.get("projects", [])
            }
            self._required_skills = {
                pid: [RequiredSkill.from_dict(s) for s in rows]
                for pid, rows in data.get("required_skills", {}).items()
            }
            self._assignments = {
                pid: [
                    ProjectAssignment(
                        project_id=pid,
                        user_id=a["user_id"],
                        allocation_percentage=AllocationPercentage(a["allocation_percentage"]),
                        assigned_by=a.get("assigned_by"),
                    )
                    for a in rows
                ]
                for pid, rows in data.get("assignments", {}).items()
            }
            self._history = [
                AllocationHistoryEntry.from_row(h) for h in data.get("history", [])
            ]

    @contextmanager
    def _writing(self) -> Iterator[None]:
        """Hold the lock for a mutation and persist it on success.

        A snapshot that cannot be written rolls the tables back to their
        state before the mutation and raises StoreError.
        """
        with self._lock:
            if self._state_store is None:
                yield
                return
            before = self.snapshot()
            yield
            try:
                self._state_store.save(self.snapshot())
            except OSError as e:
                logger.error("Writing snapshot to %s failed: %s", self._state_store.path, e)
                self.restore(before)
                raise StoreError(f"Could not save state: {e}") from e
            logger.debug("Snapshot written to %s", self._state_store.path)


def _newest_first(entries: Iterable[AllocationHistoryEntry]) -> list[AllocationHistoryEntry]:
    # Stable on insertion order, then reversed: later rows with the same
    # timestamp come first.
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    ordered = sorted(entries, key=lambda h: h.created_at or epoch)
    ordered.reverse()
    return ordered
