"""Tests for ProjectWizard — stage handling, capacity checks, submit."""

from datetime import date

import pytest

from skillbridge.errors import CapacityError
from skillbridge.models.profile import Role
from skillbridge.models.project import (
    AllocationPercentage,
    MemberAllocation,
    ProjectForm,
    ProjectStatus,
)
from skillbridge.models.skill import RatingLevel
from skillbridge.projects.wizard import ProjectWizard, WizardStage
from skillbridge.service import StaffingService
from skillbridge.stores.memory import InMemoryBackend


@pytest.fixture
def service() -> StaffingService:
    s = StaffingService(InMemoryBackend())
    s.register_profile("lead", "Lee Lead", "lead@example.com", Role.TECH_LEAD)
    s.register_profile("mgr", "Max Manager", "mgr@example.com", Role.MANAGEMENT)
    s.register_profile("ada", "Ada Lovelace", "ada@example.com", Role.EMPLOYEE)
    s.register_profile("bob", "Bob Builder", "bob@example.com", Role.EMPLOYEE)
    s.add_skill("fe", "Frontend")
    s.add_subskill("react", "fe", "React")
    s.add_subskill("vue", "fe", "Vue")
    s.record_rating("ada", "react", RatingLevel.HIGH)
    return s


@pytest.fixture
def wizard(service: StaffingService) -> ProjectWizard:
    w = ProjectWizard()
    w.set_details("Portal", "Customer portal", start_date=date(2026, 4, 1), end_date=date(2026, 6, 30))
    w.add_required_skill(service.required_skill("react", RatingLevel.MEDIUM))
    return w


def _busy(service: StaffingService, user_id: str, pct: AllocationPercentage) -> None:
    form = ProjectForm(
        name="Other", description="Other work", start_date=date(2026, 1, 1),
        members=[MemberAllocation(user_id, pct)],
    )
    assert service.create_project(form, "lead").success


class TestRequiredSkills:
    def test_duplicate_subskill_rejected(self, service: StaffingService, wizard: ProjectWizard) -> None:
        with pytest.raises(ValueError, match="already required"):
            wizard.add_required_skill(service.required_skill("react", RatingLevel.HIGH))

    def test_rerate_and_remove(self, service: StaffingService, wizard: ProjectWizard) -> None:
        wizard.set_required_rating("react", RatingLevel.HIGH)
        assert wizard.form.required_skills[0].required_rating == RatingLevel.HIGH
        wizard.remove_required_skill("react")
        assert wizard.form.required_skills == []
        with pytest.raises(ValueError, match="not required"):
            wizard.remove_required_skill("react")

    def test_changing_requirements_drops_matches(self, service: StaffingService, wizard: ProjectWizard) -> None:
        assert wizard.load_matches(service).success
        assert wizard.stage == WizardStage.TEAM
        wizard.add_required_skill(service.required_skill("vue", RatingLevel.LOW))
        assert wizard.stage == WizardStage.DETAILS
        assert wizard.matches == []
        with pytest.raises(ValueError, match="Load matches"):
            wizard.add_member("ada", 50)


class TestTeam:
    def test_matches_ranked(self, service: StaffingService, wizard: ProjectWizard) -> None:
        result = wizard.load_matches(service)
        assert result.success
        assert wizard.matches[0].user_id == "ada"
        assert wizard.generation == result.data["generation"]

    def test_each_wizard_numbers_its_own_requests(self, service: StaffingService, wizard: ProjectWizard) -> None:
        other = ProjectWizard()
        other.add_required_skill(service.required_skill("vue", RatingLevel.LOW))
        assert wizard.load_matches(service).success
        assert other.load_matches(service).success
        assert wizard.generation == other.generation == 1
        assert wizard.load_matches(service).data["generation"] == 2

    def test_add_and_update_member(self, service: StaffingService, wizard: ProjectWizard) -> None:
        wizard.load_matches(service)
        wizard.add_member("ada", 50)
        wizard.update_allocation("ada", AllocationPercentage.FULL)
        assert wizard.form.members == [MemberAllocation("ada", AllocationPercentage.FULL)]
        with pytest.raises(ValueError, match="Already a member"):
            wizard.add_member("ada", 25)

    def test_invalid_percentage(self, service: StaffingService, wizard: ProjectWizard) -> None:
        wizard.load_matches(service)
        with pytest.raises(ValueError):
            wizard.add_member("ada", 30)

    def test_non_candidate_rejected(self, service: StaffingService, wizard: ProjectWizard) -> None:
        wizard.load_matches(service)
        with pytest.raises(ValueError, match="Not a loaded candidate"):
            wizard.add_member("mgr", 25)

    def test_capacity_exceeded(self, service: StaffingService, wizard: ProjectWizard) -> None:
        _busy(service, "ada", AllocationPercentage.THREE_QUARTERS)
        wizard.load_matches(service)
        wizard.add_member("ada", 25)
        with pytest.raises(CapacityError, match="Ada Lovelace only has 25% capacity available"):
            wizard.update_allocation("ada", 50)
        assert wizard.form.members[0].allocation_percentage == AllocationPercentage.QUARTER

    def test_remove_member(self, service: StaffingService, wizard: ProjectWizard) -> None:
        wizard.load_matches(service)
        wizard.add_member("bob", 25)
        wizard.remove_member("bob")
        assert wizard.form.members == []


class TestValidation:
    def test_errors_listed(self) -> None:
        wizard = ProjectWizard()
        assert wizard.errors() == [
            "Project name is required",
            "Project description is required",
            "Start date is required",
            "At least one required skill is needed",
            "At least one team member is needed",
        ]
        with pytest.raises(ValueError, match="Project name is required"):
            wizard.validate()

    def test_end_before_start(self, service: StaffingService, wizard: ProjectWizard) -> None:
        wizard.set_details("Portal", "Customer portal", date(2026, 4, 1), date(2026, 3, 1))
        assert "End date cannot be before start date" in wizard.errors()


class TestSubmit:
    def test_create_then_edit(self, service: StaffingService, wizard: ProjectWizard) -> None:
        wizard.load_matches(service)
        wizard.add_member("ada", 50)
        result = wizard.submit(service, "lead")
        assert result.success, result.errors
        assert wizard.stage == WizardStage.SUBMITTED
        with pytest.raises(ValueError, match="already submitted"):
            wizard.add_member("bob", 25)

        project_id = wizard.project_id
        assert service.approve_project(project_id, "mgr").success
        project = service.get_project(project_id).data["project"]

        edit = ProjectWizard.for_project(project)
        assert edit.form.name == "Portal"
        edit.load_matches(service)
        # ada's 50% on this project is hers to reassign
        assert edit.available_capacity("ada") == 100
        edit.update_allocation("ada", 100)
        result = edit.submit(service, "lead")
        assert result.success, result.errors
        edited = service.get_project(project_id).data["project"]
        assert edited.status == ProjectStatus.AWAITING_APPROVAL
        assert edited.members[0].allocation_percentage == AllocationPercentage.FULL

    def test_submit_invalid(self, service: StaffingService) -> None:
        result = ProjectWizard().submit(service, "lead")
        assert not result.success
        assert len(result.errors) == 5

    def test_submit_denied(self, service: StaffingService, wizard: ProjectWizard) -> None:
        wizard.load_matches(service)
        wizard.add_member("bob", 25)
        result = wizard.submit(service, "ada")
        assert not result.success
        assert wizard.stage == WizardStage.TEAM
        assert wizard.project_id is None
