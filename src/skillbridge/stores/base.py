"""Store contracts — the data SkillBridge reads and writes.

Each store is an abstract base class. A backend implements all of them
(see StaffingBackend). Two backends ship with the package:
- InMemoryBackend: process-local tables, optionally snapshotted to JSON.
- PostgrestBackend: the hosted REST API (PostgREST tables and RPCs).

Backends raise StoreError when a read or write cannot be completed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from skillbridge.models.profile import Profile
from skillbridge.models.project import (
    AllocationHistoryEntry,
    Project,
    ProjectAssignment,
)
from skillbridge.models.skill import EmployeeRating, RequiredSkill, Skill, Subskill
from skillbridge.projects.diff import ProjectChangeSet


class ProfileStore(ABC):
    """User profiles: identity, role, and active/inactive status."""

    @abstractmethod
    def list_active_candidates(self) -> list[Profile]:
        """Active profiles with role employee or tech_lead."""

    @abstractmethod
    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        """Profiles keyed by user id. Unknown ids are omitted."""

    @abstractmethod
    def save_profile(self, profile: Profile) -> None:
        ...


class CatalogStore(ABC):
    """The skill catalog: skills and their subskills."""

    @abstractmethod
    def list_skills(self) -> list[Skill]:
        ...

    @abstractmethod
    def list_subskills(self, skill_id: Optional[str] = None) -> list[Subskill]:
        ...

    @abstractmethod
    def save_skill(self, skill: Skill) -> None:
        ...

    @abstractmethod
    def save_subskill(self, subskill: Subskill) -> None:
        ...


class RatingStore(ABC):
    """Employee ratings on subskills."""

    @abstractmethod
    def get_approved_ratings(self, user_id: str) -> list[EmployeeRating]:
        """Ratings with status approved. Other statuses are never returned."""

    @abstractmethod
    def save_rating(self, rating: EmployeeRating) -> None:
        """Insert or replace the user's rating on the subskill."""


class AllocationStore(ABC):
    """Per-user allocation across project assignments."""

    @abstractmethod
    def get_total_allocation(self, user_id: str) -> int:
        """Sum of allocation percentages on active or awaiting projects."""

    @abstractmethod
    def get_user_assignments(self, user_id: str) -> list[ProjectAssignment]:
        """Every assignment of the user, whatever the project status."""


class ProjectStore(ABC):
    """Projects, their required skills, assignments, and history."""

    @abstractmethod
    def insert_project(
        self,
        project: Project,
        required_skills: list[RequiredSkill],
        assignments: list[ProjectAssignment],
    ) -> None:
        ...

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[Project]:
        """The project's own columns; members and skills are not filled."""

    @abstractmethod
    def list_projects(self) -> list[Project]:
        """All projects, newest first."""

    @abstractmethod
    def update_project(self, project: Project) -> None:
        ...

    @abstractmethod
    def delete_project(self, project_id: str) -> None:
        """Remove a project with its skills, assignments and history."""

    @abstractmethod
    def get_required_skills(self, project_id: str) -> list[RequiredSkill]:
        ...

    @abstractmethod
    def get_assignments(self, project_id: str) -> list[ProjectAssignment]:
        ...

    @abstractmethod
    def apply_changes(
        self,
        project_id: str,
        changes: ProjectChangeSet,
        assigned_by: str,
    ) -> None:
        """Apply a change set's deletes, updates and inserts as one batch."""

    @abstractmethod
    def insert_history(self, entries: list[AllocationHistoryEntry]) -> None:
        ...

    @abstractmethod
    def get_history(self, project_id: str) -> list[AllocationHistoryEntry]:
        """History rows of a project, newest first."""

    @abstractmethod
    def get_user_history(self, user_id: str) -> list[AllocationHistoryEntry]:
        """History rows about a user across projects, newest first."""


class StaffingBackend(
    ProfileStore, CatalogStore, RatingStore, AllocationStore, ProjectStore,
):
    """A backend implementing every store contract."""

    name: str = "backend"
