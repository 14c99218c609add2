"""Employee matcher — fetches candidate data and runs the match engine.

For every active candidate the matcher needs two independent reads:
the total allocation and the approved ratings. They are issued
concurrently on a thread pool, gathered, and handed to the pure
SkillMatchEngine.

Matching is all-or-nothing. If any read fails, pending reads are
cancelled and the call raises MatchLoadError. There is no retry.

The matcher keeps no state between calls. A caller that re-runs
matching as its requirements change (one project wizard, say) owns a
MatchRequestTracker: each of its calls takes a generation number, and
an earlier result that arrives after a newer call started is rejected
instead of overwriting the newer one. Trackers are never shared between
callers.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from skillbridge.errors import MatchLoadError, StaleMatchError
from skillbridge.matching.engine import CandidateSnapshot, SkillMatchEngine
from skillbridge.models.match import EmployeeMatch
from skillbridge.models.profile import Profile
from skillbridge.models.skill import EmployeeRating, RequiredSkill
from skillbridge.stores.base import AllocationStore, ProfileStore, RatingStore


logger = logging.getLogger(__name__)


class MatchRequestTracker:
    """Issues increasing generation numbers and recognises stale ones.

    Thread-safe.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest = 0

    def begin(self) -> int:
        """Start a new request and return its generation."""
        with self._lock:
            self._latest += 1
            return self._latest

    @property
    def latest(self) -> int:
        with self._lock:
            return self._latest

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._latest

    def accept(
        self, generation: int, matches: list[EmployeeMatch],
    ) -> list[EmployeeMatch]:
        """Return matches if generation is still current.

        Raises:
            StaleMatchError: If a newer request was issued meanwhile.
        """
        if not self.is_current(generation):
            raise StaleMatchError(
                f"Match request {generation} superseded by {self.latest}"
            )
        return matches


class EmployeeMatcher:
    """Finds and ranks active candidates for a set of required skills.

    Usage:
        matcher = EmployeeMatcher(backend, backend, backend, max_workers=8)
        matches = matcher.find_matching_employees(required_skills)
        # best match first
    """

    def __init__(
        self,
        profiles: ProfileStore,
        ratings: RatingStore,
        allocations: AllocationStore,
        max_workers: int = 8,
        engine: Optional[SkillMatchEngine] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._profiles = profiles
        self._ratings = ratings
        self._allocations = allocations
        self._max_workers = max_workers
        self._engine = engine or SkillMatchEngine()

    def find_matching_employees(
        self, required_skills: list[RequiredSkill],
    ) -> list[EmployeeMatch]:
        """Score every active candidate and return them ranked.

        Raises:
            MatchLoadError: If candidate data could not be loaded.
        """
        snapshots = self.load_snapshots()
        matches = self._engine.evaluate(required_skills, snapshots)
        logger.debug(
            "Matched %d candidates against %d requirements",
            len(matches), len(required_skills),
        )
        return matches

    def load_snapshots(self) -> list[CandidateSnapshot]:
        """Fetch allocation and approved ratings for every candidate.

        Snapshots are returned in the order the profile store lists
        candidates.
        """
        try:
            candidates = self._profiles.list_active_candidates()
        except Exception as e:
            logger.error("Listing candidates failed: %s", e)
            raise MatchLoadError() from e

        if not candidates:
            return []

        executor = ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="skillbridge-match",
        )
        try:
            pending: list[tuple[Profile, Future[int], Future[list[EmployeeRating]]]] = [
                (
                    profile,
                    executor.submit(self._allocations.get_total_allocation, profile.user_id),
                    executor.submit(self._ratings.get_approved_ratings, profile.user_id),
                )
                for profile in candidates
            ]
            snapshots: list[CandidateSnapshot] = []
            for profile, total_future, ratings_future in pending:
                try:
                    total = total_future.result()
                    ratings = ratings_future.result()
                except Exception as e:
                    logger.error(
                        "Loading match data for %s failed: %s", profile.user_id, e,
                    )
                    raise MatchLoadError() from e
                snapshots.append(CandidateSnapshot(
                    profile=profile,
                    current_total_allocation=int(total or 0),
                    ratings=list(ratings),
                ))
            return snapshots
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
