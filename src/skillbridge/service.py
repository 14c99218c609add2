"""SkillBridge service — unified facade for staffing operations.

This is the primary interface for programmatic access to SkillBridge.
It orchestrates:
- Directory data (profiles, skill catalog, ratings)
- Matching (ranked candidates for a set of required skills)
- Project lifecycle (create, edit, approve, reject, delete)
- Allocation bookkeeping (assignments, history, capacity)
- Resource views (per-employee load across projects)

All operations return a ServiceResult. Store and matching failures are
caught here, logged, and reported in ServiceResult.errors; nothing is
retried. Project mutations are recorded in the activity event log when
one is configured.

Capacity (a user's allocations summing to at most 100%) is checked
but not enforced by the stores. By default an over-allocating write
goes through and the affected members are reported under
data["over_allocated"]; with strict_capacity the write is refused.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from skillbridge import __version__, access
from skillbridge.config import Settings
from skillbridge.errors import CapacityError, MatchLoadError, SkillBridgeError, StaleMatchError
from skillbridge.matching.matcher import EmployeeMatcher, MatchRequestTracker
from skillbridge.models.profile import Profile, ProfileStatus, Role
from skillbridge.models.project import (
    FULL_CAPACITY,
    AllocationHistoryView,
    Project,
    ProjectAssignment,
    ProjectForm,
    ProjectMember,
    ProjectStatus,
    available_capacity,
)
from skillbridge.models.resource import ProjectHistoryItem, ResourceAllocation, UserProject
from skillbridge.models.skill import (
    EmployeeRating,
    RatingLevel,
    RatingStatus,
    RequiredSkill,
    Skill,
    Subskill,
)
from skillbridge.persistence.event_log import EventKind, EventLog, EventRecord
from skillbridge.projects.diff import HistoryBuilder, describe_detail_changes, diff_project
from skillbridge.stores import create_backend
from skillbridge.stores.base import StaffingBackend


logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
UNKNOWN_PROJECT = "Unknown Project"


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class StaffingService:
    """Unified staffing facade.

    Usage:
        service = StaffingService(InMemoryBackend())

        service.register_profile("u1", "Ada", "ada@example.com", Role.EMPLOYEE)
        service.add_skill("fe", "Frontend")
        service.add_subskill("react", "fe", "React")
        service.record_rating("u1", "react", RatingLevel.HIGH)

        req = service.required_skill("react", RatingLevel.MEDIUM)
        result = service.find_matching_employees([req])
        result.data["matches"]  # list[EmployeeMatch], best first

        result = service.create_project(form, acting_user_id="manager-1")
    """

    def __init__(
        self,
        backend: StaffingBackend,
        event_log: Optional[EventLog] = None,
        strict_capacity: bool = False,
        match_workers: int = 8,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._backend = backend
        self._event_log = event_log
        self._strict_capacity = strict_capacity
        self._matcher = EmployeeMatcher(
            backend, backend, backend, max_workers=match_workers,
        )
        self._now = clock or (lambda: datetime.now(timezone.utc))
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        # Continue numbering from a persisted log to avoid ID collision
        self._event_counter = event_log.count if event_log is not None else 0

    @classmethod
    def from_settings(cls, settings: Settings) -> StaffingService:
        """Build a service with the backend and event log named in settings."""
        return cls(
            create_backend(settings),
            event_log=EventLog(storage_path=settings.events_path),
            strict_capacity=settings.strict_capacity,
            match_workers=settings.match_workers,
        )

    @property
    def backend(self) -> StaffingBackend:
        return self._backend

    @property
    def matcher(self) -> EmployeeMatcher:
        return self._matcher

    # ------------------------------------------------------------------
    # Directory
    # ------------------------------------------------------------------

    def register_profile(
        self,
        user_id: str,
        full_name: str,
        email: str,
        role: Role,
        status: ProfileStatus = ProfileStatus.ACTIVE,
    ) -> ServiceResult:
        """Create or replace a user profile."""
        try:
            profile = Profile(
                user_id=user_id, full_name=full_name, email=email,
                role=role, status=status,
            )
            self._backend.save_profile(profile)
        except (ValueError, SkillBridgeError) as e:
            return ServiceResult(success=False, errors=[str(e)])
        warning = self._record_event(EventKind.PROFILE_SAVED, profile.user_id, {
            "user_id": profile.user_id,
            "role": profile.role.value,
            "status": profile.status.value,
        })
        return self._ok({"user_id": profile.user_id}, warning)

    def add_skill(self, skill_id: str, name: str) -> ServiceResult:
        try:
            self._backend.save_skill(Skill(id=skill_id, name=name))
        except (ValueError, SkillBridgeError) as e:
            return ServiceResult(success=False, errors=[str(e)])
        warning = self._record_event(EventKind.SKILL_SAVED, "system", {"skill_id": skill_id})
        return self._ok({"skill_id": skill_id}, warning)

    def add_subskill(self, subskill_id: str, skill_id: str, name: str) -> ServiceResult:
        try:
            self._backend.save_subskill(Subskill(id=subskill_id, skill_id=skill_id, name=name))
        except (ValueError, SkillBridgeError) as e:
            return ServiceResult(success=False, errors=[str(e)])
        warning = self._record_event(EventKind.SKILL_SAVED, "system", {
            "skill_id": skill_id, "subskill_id": subskill_id,
        })
        return self._ok({"subskill_id": subskill_id}, warning)

    def record_rating(
        self,
        user_id: str,
        subskill_id: str,
        rating: RatingLevel,
        status: RatingStatus = RatingStatus.APPROVED,
    ) -> ServiceResult:
        """Store a user's rating on a subskill.

        The approval workflow itself lives elsewhere; this records its
        outcome. Only approved ratings take part in matching.
        """
        try:
            subskill = self._find_subskill(subskill_id)
            if subskill is None:
                return ServiceResult(success=False, errors=[f"Subskill not found: {subskill_id}"])
            record = EmployeeRating(
                user_id=user_id,
                skill_id=subskill.skill_id,
                subskill_id=subskill.id,
                rating=rating,
                status=status,
            )
            self._backend.save_rating(record)
        except (ValueError, SkillBridgeError) as e:
            return ServiceResult(success=False, errors=[str(e)])
        warning = self._record_event(EventKind.RATING_SAVED, user_id, {
            "user_id": user_id,
            "subskill_id": subskill_id,
            "rating": record.rating.value,
            "status": record.status.value,
        })
        return self._ok({"user_id": user_id, "subskill_id": subskill_id}, warning)

    def required_skill(self, subskill_id: str, rating: RatingLevel) -> RequiredSkill:
        """Build a RequiredSkill with catalog names filled in.

        Raises:
            ValueError: If the subskill is not in the catalog.
        """
        subskill = self._find_subskill(subskill_id)
        if subskill is None:
            raise ValueError(f"Subskill not found: {subskill_id}")
        skill_names = {s.id: s.name for s in self._backend.list_skills()}
        return RequiredSkill(
            skill_id=subskill.skill_id,
            subskill_id=subskill.id,
            required_rating=rating,
            skill_name=skill_names.get(subskill.skill_id, ""),
            subskill_name=subskill.name,
        )

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def find_matching_employees(
        self,
        required_skills: list[RequiredSkill],
        tracker: Optional[MatchRequestTracker] = None,
    ) -> ServiceResult:
        """Rank every active candidate against the required skills.

        data["matches"] is a list of EmployeeMatch, best first.

        A caller that re-runs matching passes its own tracker. The
        request then takes a generation from it, returned as
        data["generation"], and a result superseded by a newer request
        on the same tracker is reported as an error. Calls without a
        tracker never go stale.
        """
        generation = tracker.begin() if tracker is not None else None
        try:
            matches = self._matcher.find_matching_employees(required_skills)
            if tracker is not None:
                matches = tracker.accept(generation, matches)
        except StaleMatchError as e:
            logger.info("Discarding stale match result: %s", e)
            return ServiceResult(success=False, errors=[str(e)], data={"stale": True})
        except MatchLoadError as e:
            return ServiceResult(success=False, errors=[str(e)])
        data: dict[str, Any] = {"matches": matches}
        if generation is not None:
            data["generation"] = generation
        return ServiceResult(success=True, data=data)

    # ------------------------------------------------------------------
    # Capacity
    # ------------------------------------------------------------------

    def get_user_capacity(self, user_id: str) -> ServiceResult:
        """Total allocation and remaining capacity of a user."""
        try:
            total = self._backend.get_total_allocation(user_id)
        except SkillBridgeError as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(success=True, data={
            "user_id": user_id,
            "total": total,
            "available": available_capacity(total),
        })

    # ------------------------------------------------------------------
    # Project lifecycle
    # ------------------------------------------------------------------

    def create_project(
        self,
        form: ProjectForm,
        acting_user_id: str,
        tech_lead_id: Optional[str] = None,
    ) -> ServiceResult:
        """Create a project awaiting approval, with its skills and team."""
        try:
            actor = self._require_actor(acting_user_id)
            access.require(
                access.can_create_project(actor.role), "create projects", actor.role,
            )
            errors = _validate_form(form)
            if errors:
                return ServiceResult(success=False, errors=errors)

            over = self._over_allocations(form, project=None, existing=[])
            if over and self._strict_capacity:
                return self._capacity_refusal(over)

            now = self._now()
            project = Project(
                id=self._new_id(),
                name=form.name.strip(),
                description=form.description,
                created_by=actor.user_id,
                status=ProjectStatus.AWAITING_APPROVAL,
                tech_lead_id=tech_lead_id,
                start_date=form.start_date,
                end_date=form.end_date,
                created_at=now,
                updated_at=now,
            )
            assignments = [
                ProjectAssignment(
                    project_id=project.id,
                    user_id=m.user_id,
                    allocation_percentage=m.allocation_percentage,
                    assigned_by=actor.user_id,
                )
                for m in form.members
            ]
            self._backend.insert_project(project, list(form.required_skills), assignments)

            history = HistoryBuilder(project.id, actor.user_id, self._new_id, now)
            self._backend.insert_history(history.initial_assignments(form.members))
        except access.AccessDenied as e:
            return ServiceResult(success=False, errors=[str(e)])
        except SkillBridgeError as e:
            logger.error("Creating project '%s' failed: %s", form.name, e)
            return ServiceResult(success=False, errors=[f"Failed to create project: {e}"])

        logger.info(
            "Project %s created by %s with %d members",
            project.id, actor.user_id, len(form.members),
        )
        warning = self._record_event(EventKind.PROJECT_CREATED, actor.user_id, {
            "project_id": project.id,
            "name": project.name,
            "members": {m.user_id: int(m.allocation_percentage) for m in form.members},
            "required_skills": [s.subskill_id for s in form.required_skills],
        })
        warning = self._report_over_allocation(project.id, actor.user_id, over) or warning
        return self._ok({
            "project_id": project.id,
            "status": project.status.value,
            "over_allocated": over,
        }, warning)

    def update_project(
        self,
        project_id: str,
        form: ProjectForm,
        acting_user_id: str,
    ) -> ServiceResult:
        """Apply an edit as one diff.

        Editing an active project sends it back for approval. The diff
        between stored and submitted skills/members is applied as a
        single batch and written to the allocation history.
        """
        try:
            actor = self._require_actor(acting_user_id)
            project = self._backend.get_project(project_id)
            if project is None:
                return ServiceResult(success=False, errors=[f"Project not found: {project_id}"])
            access.require(
                access.can_edit_project(actor.role, project.status),
                f"edit {project.status.value} projects", actor.role,
            )
            errors = _validate_form(form)
            if errors:
                return ServiceResult(success=False, errors=errors)

            existing_skills = self._backend.get_required_skills(project_id)
            existing = self._backend.get_assignments(project_id)
            over = self._over_allocations(form, project=project, existing=existing)
            if over and self._strict_capacity:
                return self._capacity_refusal(over)

            now = self._now()
            history = HistoryBuilder(project_id, actor.user_id, self._new_id, now)
            rows = []

            was_active = project.status == ProjectStatus.ACTIVE
            if was_active:
                rows.append(history.reapproval(describe_detail_changes(project, form)))
            updated = replace(
                project,
                name=form.name.strip(),
                description=form.description,
                start_date=form.start_date,
                end_date=form.end_date,
                updated_at=now,
                status=ProjectStatus.AWAITING_APPROVAL if was_active else project.status,
            )
            self._backend.update_project(updated)

            changes = diff_project(existing_skills, existing, form)
            if not changes.is_empty:
                self._backend.apply_changes(project_id, changes, actor.user_id)
            rows.extend(history.for_change_set(changes))
            self._backend.insert_history(rows)
        except access.AccessDenied as e:
            return ServiceResult(success=False, errors=[str(e)])
        except SkillBridgeError as e:
            logger.error("Updating project %s failed: %s", project_id, e)
            return ServiceResult(success=False, errors=[f"Failed to update project: {e}"])

        logger.info(
            "Project %s updated by %s: +%d/-%d/~%d members, +%d/-%d skills",
            project_id, actor.user_id,
            len(changes.members_added), len(changes.members_removed),
            len(changes.members_changed),
            len(changes.skills_added), len(changes.skills_removed),
        )
        warning = self._record_event(EventKind.PROJECT_UPDATED, actor.user_id, {
            "project_id": project_id,
            "sent_back_for_approval": was_active,
            "history_rows": len(rows),
        })
        if changes.members_added or changes.members_removed or changes.members_changed:
            warning = self._record_event(EventKind.MEMBERS_CHANGED, actor.user_id, {
                "project_id": project_id,
                "added": [m.user_id for m in changes.members_added],
                "removed": [a.user_id for a in changes.members_removed],
                "changed": [c.user_id for c in changes.members_changed],
            }) or warning
        warning = self._report_over_allocation(project_id, actor.user_id, over) or warning
        return self._ok({
            "project_id": project_id,
            "status": updated.status.value,
            "history_rows": len(rows),
            "over_allocated": over,
        }, warning)

    def approve_project(self, project_id: str, acting_user_id: str) -> ServiceResult:
        """Move an awaiting project to active."""
        return self._decide(project_id, acting_user_id, ProjectStatus.ACTIVE)

    def reject_project(
        self, project_id: str, acting_user_id: str, reason: str,
    ) -> ServiceResult:
        """Reject an awaiting project. A reason is required."""
        if not reason or not reason.strip():
            return ServiceResult(success=False, errors=["Please provide a rejection reason"])
        return self._decide(project_id, acting_user_id, ProjectStatus.REJECTED, reason.strip())

    def delete_project(self, project_id: str, acting_user_id: str) -> ServiceResult:
        """Delete a project with its skills, assignments and history."""
        try:
            actor = self._require_actor(acting_user_id)
            access.require(access.can_delete_project(actor.role), "delete projects", actor.role)
            if self._backend.get_project(project_id) is None:
                return ServiceResult(success=False, errors=[f"Project not found: {project_id}"])
            self._backend.delete_project(project_id)
        except access.AccessDenied as e:
            return ServiceResult(success=False, errors=[str(e)])
        except SkillBridgeError as e:
            logger.error("Deleting project %s failed: %s", project_id, e)
            return ServiceResult(success=False, errors=[f"Failed to delete project: {e}"])
        logger.info("Project %s deleted by %s", project_id, actor.user_id)
        warning = self._record_event(EventKind.PROJECT_DELETED, actor.user_id, {
            "project_id": project_id,
        })
        return self._ok({"project_id": project_id}, warning)

    # ------------------------------------------------------------------
    # Project queries
    # ------------------------------------------------------------------

    def get_project(self, project_id: str) -> ServiceResult:
        """A project with members (and their capacity) and required skills."""
        try:
            project = self._backend.get_project(project_id)
            if project is None:
                return ServiceResult(success=False, errors=["Project not found"])
            detailed = self._with_details(project)
        except SkillBridgeError as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(success=True, data={"project": detailed})

    def list_projects(self) -> ServiceResult:
        """All projects, newest first, with members and required skills."""
        try:
            projects = [self._with_details(p) for p in self._backend.list_projects()]
        except SkillBridgeError as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(success=True, data={"projects": projects})

    def get_allocation_history(self, project_id: str) -> ServiceResult:
        """History of a project, newest first, with user names resolved."""
        try:
            entries = self._backend.get_history(project_id)
            ids = {e.user_id for e in entries} | {e.changed_by for e in entries}
            profiles = self._backend.get_profiles(i for i in ids if i)
        except SkillBridgeError as e:
            return ServiceResult(success=False, errors=[str(e)])
        views = [
            AllocationHistoryView(
                entry=e,
                full_name=_name_of(profiles, e.user_id),
                changed_by_name=_name_of(profiles, e.changed_by),
            )
            for e in entries
        ]
        return ServiceResult(success=True, data={"history": views})

    # ------------------------------------------------------------------
    # Resource views
    # ------------------------------------------------------------------

    def resource_allocations(self) -> ServiceResult:
        """Every candidate's load, most allocated first."""
        try:
            statuses = {p.id: p.status for p in self._backend.list_projects()}
            resources = []
            for profile in self._backend.list_active_candidates():
                total = self._backend.get_total_allocation(profile.user_id)
                active = sum(
                    1 for a in self._backend.get_user_assignments(profile.user_id)
                    if statuses.get(a.project_id) == ProjectStatus.ACTIVE
                )
                resources.append(ResourceAllocation(
                    user_id=profile.user_id,
                    full_name=profile.full_name,
                    email=profile.email,
                    role=profile.role.value,
                    total_allocation=total,
                    available_capacity=available_capacity(total),
                    active_projects_count=active,
                ))
        except SkillBridgeError as e:
            logger.error("Loading resource allocations failed: %s", e)
            return ServiceResult(success=False, errors=[str(e)])
        resources.sort(key=lambda r: -r.total_allocation)
        return ServiceResult(success=True, data={"resources": resources})

    def user_current_projects(self, user_id: str) -> ServiceResult:
        """Projects the user currently counts against."""
        try:
            current = []
            for a in self._backend.get_user_assignments(user_id):
                project = self._backend.get_project(a.project_id)
                if project is None or not project.status.counts_toward_allocation:
                    continue
                current.append(UserProject(
                    project_id=project.id,
                    project_name=project.name,
                    project_status=project.status.value,
                    allocation_percentage=int(a.allocation_percentage),
                    start_date=project.start_date,
                    end_date=project.end_date,
                ))
        except SkillBridgeError as e:
            return ServiceResult(success=False, errors=[str(e)])
        return ServiceResult(success=True, data={"projects": current})

    def user_project_history(self, user_id: str) -> ServiceResult:
        """Every history row about the user, newest first."""
        try:
            entries = self._backend.get_user_history(user_id)
            projects = {
                pid: self._backend.get_project(pid)
                for pid in {e.project_id for e in entries}
            }
            profiles = self._backend.get_profiles({e.changed_by for e in entries if e.changed_by})
        except SkillBridgeError as e:
            logger.error("Loading project history for %s failed: %s", user_id, e)
            return ServiceResult(success=False, errors=[str(e)])
        items = []
        for e in entries:
            project = projects.get(e.project_id)
            items.append(ProjectHistoryItem(
                project_id=e.project_id,
                project_name=project.name if project else UNKNOWN_PROJECT,
                allocation_percentage=e.new_allocation,
                assigned_at=e.created_at,
                changed_by_name=_name_of(profiles, e.changed_by),
                change_reason=e.change_reason,
                start_date=project.start_date if project else None,
                end_date=project.end_date if project else None,
                project_status=project.status.value if project else None,
            ))
        return ServiceResult(success=True, data={"history": items})

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Return a summary of the data the backend holds."""
        projects = self._backend.list_projects()
        by_status: dict[str, int] = {}
        for p in projects:
            by_status[p.status.value] = by_status.get(p.status.value, 0) + 1
        return {
            "version": __version__,
            "backend": self._backend.name,
            "candidates": len(self._backend.list_active_candidates()),
            "skills": len(self._backend.list_skills()),
            "subskills": len(self._backend.list_subskills()),
            "projects": {"total": len(projects), "by_status": by_status},
            "events": self._event_log.count if self._event_log is not None else 0,
            "strict_capacity": self._strict_capacity,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _decide(
        self,
        project_id: str,
        acting_user_id: str,
        target: ProjectStatus,
        reason: Optional[str] = None,
    ) -> ServiceResult:
        try:
            actor = self._require_actor(acting_user_id)
            project = self._backend.get_project(project_id)
            if project is None:
                return ServiceResult(success=False, errors=[f"Project not found: {project_id}"])
            access.require(
                access.can_approve_project(actor.role, project.status),
                f"approve or reject {project.status.value} projects", actor.role,
            )
            now = self._now()
            if target == ProjectStatus.ACTIVE:
                decided = replace(project, status=target, approved_by=actor.user_id, approved_at=now)
                kind = EventKind.PROJECT_APPROVED
            else:
                decided = replace(
                    project, status=target, rejected_by=actor.user_id,
                    rejected_at=now, rejection_reason=reason,
                )
                kind = EventKind.PROJECT_REJECTED
            self._backend.update_project(decided)
        except access.AccessDenied as e:
            return ServiceResult(success=False, errors=[str(e)])
        except SkillBridgeError as e:
            logger.error("Setting project %s to %s failed: %s", project_id, target.value, e)
            return ServiceResult(success=False, errors=[f"Failed to update project status: {e}"])

        logger.info("Project %s is now %s (by %s)", project_id, target.value, actor.user_id)
        payload: dict[str, Any] = {"project_id": project_id, "status": target.value}
        if reason:
            payload["reason"] = reason
        warning = self._record_event(kind, actor.user_id, payload)
        return self._ok({"project_id": project_id, "status": target.value}, warning)

    def _require_actor(self, user_id: str) -> Profile:
        profile = self._backend.get_profiles([user_id]).get(user_id)
        if profile is None:
            raise access.AccessDenied(f"Unknown user: {user_id}")
        if not profile.is_active:
            raise access.AccessDenied(f"User is inactive: {user_id}")
        return profile

    def _find_subskill(self, subskill_id: str) -> Optional[Subskill]:
        for s in self._backend.list_subskills():
            if s.id == subskill_id:
                return s
        return None

    def _with_details(self, project: Project) -> Project:
        assignments = self._backend.get_assignments(project.id)
        profiles = self._backend.get_profiles(a.user_id for a in assignments)
        members = []
        for a in assignments:
            total = self._backend.get_total_allocation(a.user_id)
            p = profiles.get(a.user_id)
            members.append(ProjectMember(
                user_id=a.user_id,
                full_name=p.full_name if p else UNKNOWN_NAME,
                email=p.email if p else "",
                role=p.role.value if p else "",
                allocation_percentage=a.allocation_percentage,
                current_total_allocation=total,
                available_capacity=available_capacity(total),
            ))
        return replace(
            project,
            members=members,
            required_skills=self._backend.get_required_skills(project.id),
        )

    def _over_allocations(
        self,
        form: ProjectForm,
        project: Optional[Project],
        existing: list[ProjectAssignment],
    ) -> list[dict[str, Any]]:
        """Members whose total would exceed 100% after this write.

        The stored total already includes this project's current
        allocation when the project counts toward allocation, so that
        share is swapped for the requested one.
        """
        counted = project is not None and project.status.counts_toward_allocation
        current = {a.user_id: int(a.allocation_percentage) for a in existing}
        over = []
        for m in form.members:
            total = self._backend.get_total_allocation(m.user_id)
            if counted:
                total -= current.get(m.user_id, 0)
            projected = total + int(m.allocation_percentage)
            if projected > FULL_CAPACITY:
                over.append({
                    "user_id": m.user_id,
                    "projected_total": projected,
                    "available_capacity": available_capacity(total),
                })
        if over:
            profiles = self._backend.get_profiles(o["user_id"] for o in over)
            for o in over:
                o["full_name"] = _name_of(profiles, o["user_id"])
        return over

    def _capacity_refusal(self, over: list[dict[str, Any]]) -> ServiceResult:
        errors = [str(CapacityError(o["full_name"], o["available_capacity"])) for o in over]
        return ServiceResult(success=False, errors=errors, data={"over_allocated": over})

    def _report_over_allocation(
        self, project_id: str, actor_id: str, over: list[dict[str, Any]],
    ) -> Optional[str]:
        if not over:
            return None
        for o in over:
            logger.warning(
                "User %s allocated %d%% in total after change to project %s",
                o["user_id"], o["projected_total"], project_id,
            )
        return self._record_event(EventKind.OVER_ALLOCATION_DETECTED, actor_id, {
            "project_id": project_id,
            "members": over,
        })

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(
        self, kind: EventKind, actor_id: str, payload: dict[str, Any],
    ) -> Optional[str]:
        """Append to the activity log. Returns a warning string on failure.

        The store write has already happened when this runs, so a log
        failure is reported to the caller rather than undoing the write.
        """
        if self._event_log is None:
            return None
        try:
            self._event_log.append(EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                timestamp_utc=self._now(),
            ))
        except (ValueError, OSError) as e:
            logger.error("Activity log append failed for %s: %s", kind.value, e)
            return f"Activity log failure: {e}"
        return None

    @staticmethod
    def _ok(data: dict[str, Any], warning: Optional[str]) -> ServiceResult:
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)


def _validate_form(form: ProjectForm) -> list[str]:
    errors = []
    if not form.name or not form.name.strip():
        errors.append("Project name is required")
    seen: set[str] = set()
    for m in form.members:
        if m.user_id in seen:
            errors.append(f"Member listed twice: {m.user_id}")
        seen.add(m.user_id)
    required: set[str] = set()
    for s in form.required_skills:
        if s.subskill_id in required:
            errors.append(f"Subskill required twice: {s.subskill_id}")
        required.add(s.subskill_id)
    if form.start_date and form.end_date and form.end_date < form.start_date:
        errors.append("End date cannot be before start date")
    return errors


def _name_of(profiles: dict[str, Profile], user_id: str) -> str:
    p = profiles.get(user_id)
    return p.full_name if p and p.full_name else UNKNOWN_NAME
