"""Match result models — one ranked candidate and its per-skill breakdown."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from skillbridge.models.skill import NO_RATING_LABEL, RatingLevel


@dataclass(frozen=True)
class SkillDetail:
    """How a candidate fares against a single requirement.

    Drill-down only; scoring uses the matches flag and nothing else.
    """
    skill_name: str
    subskill_name: str
    user_rating: Union[RatingLevel, str]  # RatingLevel, or "none"
    required_rating: RatingLevel
    matches: bool

    def to_dict(self) -> dict[str, Any]:
        rating = self.user_rating
        return {
            "skill_name": self.skill_name,
            "subskill_name": self.subskill_name,
            "user_rating": rating.value if isinstance(rating, RatingLevel) else NO_RATING_LABEL,
            "required_rating": self.required_rating.value,
            "matches": self.matches,
        }


@dataclass(frozen=True)
class EmployeeMatch:
    """A candidate scored against a project's required skills."""
    user_id: str
    full_name: str
    email: str
    role: str
    available_capacity: int
    current_total_allocation: int
    matched_skills: int
    total_required_skills: int
    match_percentage: int
    skill_details: list[SkillDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "available_capacity": self.available_capacity,
            "current_total_allocation": self.current_total_allocation,
            "matched_skills": self.matched_skills,
            "total_required_skills": self.total_required_skills,
            "match_percentage": self.match_percentage,
            "skill_details": [d.to_dict() for d in self.skill_details],
        }
