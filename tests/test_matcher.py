"""Tests for EmployeeMatcher — concurrent fetches, all-or-nothing failure, staleness."""

import threading
from unittest import mock

import pytest

from skillbridge.errors import MatchLoadError, StaleMatchError
from skillbridge.matching.matcher import EmployeeMatcher, MatchRequestTracker
from skillbridge.models.profile import Profile, ProfileStatus, Role
from skillbridge.models.project import (
    AllocationPercentage,
    Project,
    ProjectAssignment,
    ProjectStatus,
)
from skillbridge.models.skill import EmployeeRating, RatingLevel, RatingStatus, RequiredSkill
from skillbridge.stores.memory import InMemoryBackend


REACT_MEDIUM = RequiredSkill(
    skill_id="fe", subskill_id="react", required_rating=RatingLevel.MEDIUM,
    skill_name="Frontend", subskill_name="React",
)


@pytest.fixture
def backend() -> InMemoryBackend:
    b = InMemoryBackend()
    for uid, role in [
        ("ada", Role.EMPLOYEE),
        ("bob", Role.TECH_LEAD),
        ("cy", Role.EMPLOYEE),
        ("mgr", Role.MANAGEMENT),
        ("root", Role.ADMIN),
    ]:
        b.save_profile(Profile(uid, uid.title(), f"{uid}@example.com", role))
    b.save_profile(Profile("gone", "Gone", "gone@example.com", Role.EMPLOYEE, ProfileStatus.INACTIVE))
    b.save_rating(EmployeeRating("ada", "fe", "react", RatingLevel.HIGH))
    b.save_rating(EmployeeRating("bob", "fe", "react", RatingLevel.MEDIUM))
    b.save_rating(EmployeeRating("cy", "fe", "react", RatingLevel.HIGH, RatingStatus.DRAFT))
    b.insert_project(
        Project(id="p1", name="P1", description="", created_by="mgr", status=ProjectStatus.ACTIVE),
        [],
        [ProjectAssignment("p1", "ada", AllocationPercentage.HALF)],
    )
    return b


class TestFindMatchingEmployees:
    def test_ranks_active_candidates_only(self, backend: InMemoryBackend) -> None:
        matcher = EmployeeMatcher(backend, backend, backend, max_workers=4)
        matches = matcher.find_matching_employees([REACT_MEDIUM])
        assert [m.user_id for m in matches] == ["bob", "ada", "cy"]
        assert [m.match_percentage for m in matches] == [100, 100, 0]
        assert matches[1].available_capacity == 50

    def test_single_worker(self, backend: InMemoryBackend) -> None:
        matcher = EmployeeMatcher(backend, backend, backend, max_workers=1)
        assert len(matcher.find_matching_employees([REACT_MEDIUM])) == 3

    def test_no_candidates(self) -> None:
        empty = InMemoryBackend()
        matcher = EmployeeMatcher(empty, empty, empty)
        assert matcher.find_matching_employees([REACT_MEDIUM]) == []

    def test_invalid_worker_count(self, backend: InMemoryBackend) -> None:
        with pytest.raises(ValueError, match="max_workers"):
            EmployeeMatcher(backend, backend, backend, max_workers=0)

    def test_fetches_run_on_worker_threads(self, backend: InMemoryBackend) -> None:
        seen: set[str] = set()
        original = backend.get_approved_ratings

        def recording(user_id: str) -> list[EmployeeRating]:
            seen.add(threading.current_thread().name)
            return original(user_id)

        with mock.patch.object(backend, "get_approved_ratings", side_effect=recording):
            EmployeeMatcher(backend, backend, backend).find_matching_employees([REACT_MEDIUM])
        assert seen
        assert all(name.startswith("skillbridge-match") for name in seen)


class TestFailure:
    def test_one_failed_fetch_fails_whole_call(self, backend: InMemoryBackend) -> None:
        original = backend.get_total_allocation

        def flaky(user_id: str) -> int:
            if user_id == "bob":
                raise ConnectionError("backend down")
            return original(user_id)

        with mock.patch.object(backend, "get_total_allocation", side_effect=flaky):
            matcher = EmployeeMatcher(backend, backend, backend)
            with pytest.raises(MatchLoadError, match="Failed to load matches") as info:
                matcher.find_matching_employees([REACT_MEDIUM])
        assert isinstance(info.value.__cause__, ConnectionError)

    def test_listing_failure(self, backend: InMemoryBackend) -> None:
        with mock.patch.object(
            backend, "list_active_candidates", side_effect=RuntimeError("boom"),
        ):
            matcher = EmployeeMatcher(backend, backend, backend)
            with pytest.raises(MatchLoadError):
                matcher.find_matching_employees([])


class TestStaleness:
    def test_tracker_generations(self) -> None:
        tracker = MatchRequestTracker()
        first = tracker.begin()
        second = tracker.begin()
        assert second > first
        assert tracker.latest == second
        assert tracker.is_current(second)
        assert not tracker.is_current(first)

    def test_accept_rejects_superseded(self) -> None:
        tracker = MatchRequestTracker()
        old = tracker.begin()
        tracker.begin()
        with pytest.raises(StaleMatchError):
            tracker.accept(old, [])

    def test_matcher_calls_are_independent(self, backend: InMemoryBackend) -> None:
        matcher = EmployeeMatcher(backend, backend, backend)
        first = matcher.find_matching_employees([REACT_MEDIUM])
        second = matcher.find_matching_employees([])
        assert len(first) == len(second) == 3
