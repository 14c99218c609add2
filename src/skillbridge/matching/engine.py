"""Skill match engine — scores candidates against a project's required skills.

Pure computation. No side effects.

For each candidate and each requirement:
    satisfied = ordinal(candidate rating on that subskill) >= ordinal(required)
where a missing approved rating has ordinal 0 and never satisfies.

match_percentage = round(100 * matched / required), 0 when nothing is required.
available_capacity = 100 - current_total_allocation (not clamped).

Ranking: match_percentage descending, then available_capacity descending.
The sort is stable, so candidates with equal keys keep listing order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from skillbridge.models.match import EmployeeMatch, SkillDetail
from skillbridge.models.profile import Profile
from skillbridge.models.project import available_capacity
from skillbridge.models.skill import (
    NO_RATING_LABEL,
    EmployeeRating,
    RatingLevel,
    RequiredSkill,
)


@dataclass(frozen=True)
class CandidateSnapshot:
    """Everything the engine needs to know about one candidate.

    Assembled by the matcher from the profile, allocation and rating
    stores before scoring starts.
    """
    profile: Profile
    current_total_allocation: int
    ratings: list[EmployeeRating] = field(default_factory=list)


def match_percentage(matched: int, total: int) -> int:
    """Percentage of requirements met, rounded half up.

    Returns 0 when there are no requirements.
    """
    if total <= 0:
        return 0
    # floor(100 * matched / total + 0.5) in integer arithmetic
    return (200 * matched + total) // (2 * total)


class SkillMatchEngine:
    """Scores and ranks candidates against required skills.

    Usage:
        engine = SkillMatchEngine()
        matches = engine.evaluate(requirements, snapshots)
        # matches is sorted best first
    """

    def satisfies(
        self,
        user_rating: Optional[RatingLevel],
        required_rating: RatingLevel,
    ) -> bool:
        """True if a (possibly missing) rating meets the required level."""
        return RatingLevel.value_of(user_rating) >= required_rating.ordinal

    def score_candidate(
        self,
        snapshot: CandidateSnapshot,
        requirements: list[RequiredSkill],
    ) -> EmployeeMatch:
        """Score one candidate against every requirement independently.

        Lookup is by exact subskill id. A rating on the parent skill, or on
        a sibling subskill, does not count.
        """
        approved = _index_approved(snapshot.ratings)

        matched = 0
        details: list[SkillDetail] = []
        for req in requirements:
            user_rating = approved.get(req.subskill_id)
            ok = self.satisfies(user_rating, req.required_rating)
            if ok:
                matched += 1
            details.append(SkillDetail(
                skill_name=req.skill_name,
                subskill_name=req.subskill_name,
                user_rating=user_rating if user_rating is not None else NO_RATING_LABEL,
                required_rating=req.required_rating,
                matches=ok,
            ))

        profile = snapshot.profile
        return EmployeeMatch(
            user_id=profile.user_id,
            full_name=profile.full_name,
            email=profile.email,
            role=profile.role.value,
            available_capacity=available_capacity(snapshot.current_total_allocation),
            current_total_allocation=snapshot.current_total_allocation,
            matched_skills=matched,
            total_required_skills=len(requirements),
            match_percentage=match_percentage(matched, len(requirements)),
            skill_details=details,
        )

    def rank(self, matches: Iterable[EmployeeMatch]) -> list[EmployeeMatch]:
        """Order matches best first: match percentage, then free capacity."""
        return sorted(
            matches,
            key=lambda m: (-m.match_percentage, -m.available_capacity),
        )

    def evaluate(
        self,
        requirements: list[RequiredSkill],
        snapshots: Iterable[CandidateSnapshot],
    ) -> list[EmployeeMatch]:
        """Score every candidate and return them ranked."""
        return self.rank(
            self.score_candidate(s, requirements) for s in snapshots
        )


def _index_approved(ratings: list[EmployeeRating]) -> dict[str, RatingLevel]:
    """Map subskill id to approved rating. First approved rating wins."""
    index: dict[str, RatingLevel] = {}
    for r in ratings:
        if not r.is_approved:
            continue
        index.setdefault(r.subskill_id, r.rating)
    return index
