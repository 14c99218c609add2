"""Project wizard — explicit state for building a project form.

The wizard moves through three stages:

    DETAILS    name, description, dates and required skills are edited
    TEAM       matches are loaded; members can be added and re-allocated
    SUBMITTED  the form was persisted; the wizard is done

Changing the required skills while in TEAM drops the loaded matches and
returns to DETAILS, so members are always chosen from a match list that
reflects the current requirements.

A member may not be given more than their available capacity. For an
existing project, the member's current allocation on that project is
already part of their total and is added back before the check.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from skillbridge.errors import CapacityError
from skillbridge.matching.matcher import MatchRequestTracker
from skillbridge.models.match import EmployeeMatch
from skillbridge.models.project import (
    AllocationPercentage,
    MemberAllocation,
    Project,
    ProjectForm,
)
from skillbridge.models.skill import RatingLevel, RequiredSkill
from skillbridge.service import ServiceResult, StaffingService


logger = logging.getLogger(__name__)


class WizardStage(str, enum.Enum):
    DETAILS = "details"
    TEAM = "team"
    SUBMITTED = "submitted"


class ProjectWizard:
    """Builds a ProjectForm for create_project or update_project.

    Usage:
        wizard = ProjectWizard()
        wizard.set_details("Portal", "Customer portal", start_date=date(2026, 1, 5))
        wizard.add_required_skill(service.required_skill("react", RatingLevel.MEDIUM))
        wizard.load_matches(service)
        wizard.add_member("u1", AllocationPercentage.HALF)
        result = wizard.submit(service, acting_user_id="lead-1")
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        form: Optional[ProjectForm] = None,
        existing_allocations: Optional[dict[str, int]] = None,
    ) -> None:
        self._project_id = project_id
        self._form = form or ProjectForm(name="", description="")
        self._existing = dict(existing_allocations or {})
        self._stage = WizardStage.DETAILS
        self._matches: dict[str, EmployeeMatch] = {}
        self._generation: Optional[int] = None
        self._tracker = MatchRequestTracker()

    @classmethod
    def for_project(cls, project: Project) -> ProjectWizard:
        """Start an edit of a stored project with members and skills loaded."""
        members = [
            MemberAllocation(user_id=m.user_id, allocation_percentage=m.allocation_percentage)
            for m in project.members
        ]
        existing: dict[str, int] = {}
        if project.status.counts_toward_allocation:
            existing = {m.user_id: int(m.allocation_percentage) for m in project.members}
        form = ProjectForm(
            name=project.name,
            description=project.description,
            start_date=project.start_date,
            end_date=project.end_date,
            required_skills=list(project.required_skills),
            members=members,
        )
        return cls(project_id=project.id, form=form, existing_allocations=existing)

    @property
    def stage(self) -> WizardStage:
        return self._stage

    @property
    def project_id(self) -> Optional[str]:
        return self._project_id

    @property
    def form(self) -> ProjectForm:
        return self._form

    @property
    def matches(self) -> list[EmployeeMatch]:
        """Loaded matches in ranked order."""
        return list(self._matches.values())

    @property
    def generation(self) -> Optional[int]:
        return self._generation

    # ------------------------------------------------------------------
    # Details and required skills
    # ------------------------------------------------------------------

    def set_details(
        self,
        name: str,
        description: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> None:
        self._check_open()
        self._form.name = name
        self._form.description = description
        self._form.start_date = start_date
        self._form.end_date = end_date

    def add_required_skill(self, skill: RequiredSkill) -> None:
        """Add a requirement. Each subskill may be required once.

        Raises:
            ValueError: If the subskill is already required.
        """
        self._check_open()
        if self._find_skill(skill.subskill_id) is not None:
            raise ValueError(f"Subskill already required: {skill.subskill_name or skill.subskill_id}")
        self._form.required_skills.append(skill)
        self._requirements_changed()

    def remove_required_skill(self, subskill_id: str) -> None:
        self._check_open()
        if self._find_skill(subskill_id) is None:
            raise ValueError(f"Subskill not required: {subskill_id}")
        self._form.required_skills = [
            s for s in self._form.required_skills if s.subskill_id != subskill_id
        ]
        self._requirements_changed()

    def set_required_rating(self, subskill_id: str, rating: RatingLevel) -> None:
        self._check_open()
        current = self._find_skill(subskill_id)
        if current is None:
            raise ValueError(f"Subskill not required: {subskill_id}")
        if current.required_rating == rating:
            return
        self._form.required_skills = [
            replace(s, required_rating=rating) if s.subskill_id == subskill_id else s
            for s in self._form.required_skills
        ]
        self._requirements_changed()

    # ------------------------------------------------------------------
    # Matching and team
    # ------------------------------------------------------------------

    def load_matches(self, service: StaffingService) -> ServiceResult:
        """Run matching for the current requirements and enter TEAM."""
        self._check_open()
        result = service.find_matching_employees(
            list(self._form.required_skills), tracker=self._tracker,
        )
        if not result.success:
            return result
        self._matches = {m.user_id: m for m in result.data["matches"]}
        self._generation = result.data.get("generation")
        self._stage = WizardStage.TEAM
        return result

    def add_member(self, user_id: str, allocation: int) -> None:
        """Add a matched candidate to the team.

        Raises:
            ValueError: If matches are not loaded, the user is not a loaded
                candidate, is already a member, or the allocation is not a
                valid percentage.
            CapacityError: If the allocation exceeds available capacity.
        """
        self._check_team()
        pct = AllocationPercentage(allocation)
        if self._find_member(user_id) is not None:
            raise ValueError(f"Already a member: {user_id}")
        self._check_capacity(user_id, pct)
        self._form.members.append(MemberAllocation(user_id=user_id, allocation_percentage=pct))

    def update_allocation(self, user_id: str, allocation: int) -> None:
        """Change a member's allocation.

        Raises:
            ValueError: If the user is not a member.
            CapacityError: If the allocation exceeds available capacity.
        """
        self._check_team()
        pct = AllocationPercentage(allocation)
        if self._find_member(user_id) is None:
            raise ValueError(f"Not a member: {user_id}")
        self._check_capacity(user_id, pct)
        self._form.members = [
            MemberAllocation(user_id=m.user_id, allocation_percentage=pct)
            if m.user_id == user_id else m
            for m in self._form.members
        ]

    def remove_member(self, user_id: str) -> None:
        self._check_open()
        if self._find_member(user_id) is None:
            raise ValueError(f"Not a member: {user_id}")
        self._form.members = [m for m in self._form.members if m.user_id != user_id]

    def available_capacity(self, user_id: str) -> int:
        """Capacity the user can still give to this project."""
        match = self._matches.get(user_id)
        if match is None:
            raise ValueError(f"Not a loaded candidate: {user_id}")
        return match.available_capacity + self._existing.get(user_id, 0)

    # ------------------------------------------------------------------
    # Validation and submit
    # ------------------------------------------------------------------

    def errors(self) -> list[str]:
        """Everything preventing submission, in form order."""
        form = self._form
        errors = []
        if not form.name.strip():
            errors.append("Project name is required")
        if not form.description.strip():
            errors.append("Project description is required")
        if form.start_date is None:
            errors.append("Start date is required")
        elif form.end_date is not None and form.end_date < form.start_date:
            errors.append("End date cannot be before start date")
        if not form.required_skills:
            errors.append("At least one required skill is needed")
        if not form.members:
            errors.append("At least one team member is needed")
        return errors

    def validate(self) -> ProjectForm:
        """Return the form ready for persistence.

        Raises:
            ValueError: Listing every validation failure.
        """
        errors = self.errors()
        if errors:
            raise ValueError("; ".join(errors))
        return self._form

    def submit(self, service: StaffingService, acting_user_id: str) -> ServiceResult:
        """Persist through create_project or update_project."""
        self._check_open()
        errors = self.errors()
        if errors:
            return ServiceResult(success=False, errors=errors)
        form = self.validate()
        if self._project_id is None:
            result = service.create_project(form, acting_user_id)
        else:
            result = service.update_project(self._project_id, form, acting_user_id)
        if result.success:
            self._project_id = result.data["project_id"]
            self._stage = WizardStage.SUBMITTED
            logger.debug("Wizard submitted project %s", self._project_id)
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._stage == WizardStage.SUBMITTED:
            raise ValueError("Wizard already submitted")

    def _check_team(self) -> None:
        self._check_open()
        if self._stage != WizardStage.TEAM:
            raise ValueError("Load matches before choosing team members")

    def _check_capacity(self, user_id: str, pct: AllocationPercentage) -> None:
        available = self.available_capacity(user_id)
        if int(pct) > available:
            raise CapacityError(self._matches[user_id].full_name, available)

    def _requirements_changed(self) -> None:
        if self._stage == WizardStage.TEAM:
            self._matches = {}
            self._generation = None
            self._stage = WizardStage.DETAILS

    def _find_skill(self, subskill_id: str) -> Optional[RequiredSkill]:
        for s in self._form.required_skills:
            if s.subskill_id == subskill_id:
                return s
        return None

    def _find_member(self, user_id: str) -> Optional[MemberAllocation]:
        for m in self._form.members:
            if m.user_id == user_id:
                return m
        return None
