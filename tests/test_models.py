"""Tests for data model validation and row conversion."""

from datetime import date, datetime, timezone

import pytest

from skillbridge.errors import CapacityError
from skillbridge.models.profile import Profile, ProfileStatus, Role
from skillbridge.models.project import (
    AllocationHistoryEntry,
    AllocationPercentage,
    Project,
    ProjectStatus,
    available_capacity,
)
from skillbridge.models.skill import (
    EmployeeRating,
    RatingLevel,
    RatingStatus,
    RequiredSkill,
    Skill,
    Subskill,
)


class TestSkillModels:
    def test_blank_ids_rejected(self) -> None:
        with pytest.raises(ValueError):
            Skill("", "Frontend")
        with pytest.raises(ValueError):
            Subskill("react", " ", "React")

    def test_required_skill_dict(self) -> None:
        req = RequiredSkill("fe", "react", RatingLevel.HIGH, "Frontend", "React")
        data = req.to_dict()
        assert data["required_rating"] == "high"
        assert RequiredSkill.from_dict(data) == req
        assert req.diff_key == ("fe", "react", "high")

    def test_required_rating_string_is_coerced(self) -> None:
        req = RequiredSkill("fe", "react", "medium")
        assert req.required_rating is RatingLevel.MEDIUM
        assert RatingLevel.HIGH.satisfies(req.required_rating)

    @pytest.mark.parametrize("rating", ["expert", None, 2])
    def test_unknown_required_rating_rejected(self, rating: object) -> None:
        with pytest.raises(ValueError):
            RequiredSkill("fe", "react", rating)

    def test_required_skill_needs_subskill(self) -> None:
        with pytest.raises(ValueError):
            RequiredSkill("fe", " ", RatingLevel.LOW)

    def test_employee_rating_strings_coerced(self) -> None:
        rating = EmployeeRating("ada", "fe", "react", "high", "submitted")
        assert (rating.rating, rating.status) == (RatingLevel.HIGH, RatingStatus.SUBMITTED)
        assert not rating.is_approved


class TestProfile:
    def test_id_is_stripped(self) -> None:
        assert Profile("  ada ", "Ada", "a@x", Role.EMPLOYEE).user_id == "ada"

    def test_blank_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            Profile("   ", "Ada", "a@x", Role.EMPLOYEE)

    def test_from_dict_defaults(self) -> None:
        p = Profile.from_dict({"user_id": "ada", "role": "tech_lead", "full_name": None})
        assert p.full_name == ""
        assert p.status == ProfileStatus.ACTIVE
        assert p.is_active


class TestProject:
    def test_allocation_percentages_closed(self) -> None:
        assert [int(p) for p in AllocationPercentage] == [25, 50, 75, 100]
        with pytest.raises(ValueError):
            AllocationPercentage(30)

    def test_counts_toward_allocation(self) -> None:
        counted = [s for s in ProjectStatus if s.counts_toward_allocation]
        assert counted == [ProjectStatus.AWAITING_APPROVAL, ProjectStatus.ACTIVE]

    def test_available_capacity_unclamped(self) -> None:
        assert available_capacity(0) == 100
        assert available_capacity(150) == -50

    def test_row_parses_api_timestamps(self) -> None:
        p = Project.from_row({
            "id": "p1",
            "name": "Portal",
            "description": None,
            "created_by": "lead",
            "status": "active",
            "start_date": "2026-01-05",
            "created_at": "2026-01-01T09:30:00Z",
        })
        assert p.description == ""
        assert p.status == ProjectStatus.ACTIVE
        assert p.start_date == date(2026, 1, 5)
        assert p.created_at == datetime(2026, 1, 1, 9, 30, tzinfo=timezone.utc)
        assert p.end_date is None

    def test_history_row(self) -> None:
        entry = AllocationHistoryEntry.from_row({
            "id": 7, "project_id": "p1", "user_id": "ada",
            "previous_allocation": None, "new_allocation": 50,
            "changed_by": "lead", "change_reason": None, "created_at": None,
        })
        assert entry.id == "7"
        assert entry.change_reason == ""
        assert entry.to_row()["previous_allocation"] is None


class TestCapacityError:
    def test_message(self) -> None:
        err = CapacityError("Ada Lovelace", 25)
        assert str(err) == "Ada Lovelace only has 25% capacity available"
        assert err.available == 25
