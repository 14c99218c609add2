"""Skill data models — catalog entries, rating levels, ratings, and requirements.

These models represent the skill dimension of staffing:
- What skills exist (Skill and Subskill, a two-level catalog)
- How well an employee rates on a subskill (EmployeeRating)
- What a project needs (RequiredSkill)

Ratings are recorded at subskill granularity. Only approved ratings
are visible to matching; draft, submitted and rejected ratings exist
for the approval workflow only.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional


# Ordinal value of a missing rating. Lower than every RatingLevel.
NO_RATING_VALUE = 0
NO_RATING_LABEL = "none"


class RatingLevel(str, enum.Enum):
    """Ordinal competency level: low < medium < high."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def ordinal(self) -> int:
        return _RATING_ORDINALS[self]

    def satisfies(self, required: RatingLevel) -> bool:
        """True if this level meets or exceeds the required level."""
        return self.ordinal >= required.ordinal

    @classmethod
    def value_of(cls, level: Optional[RatingLevel]) -> int:
        """Ordinal value of a level, or the no-rating sentinel for None."""
        if level is None:
            return NO_RATING_VALUE
        return level.ordinal


_RATING_ORDINALS = {
    RatingLevel.LOW: 1,
    RatingLevel.MEDIUM: 2,
    RatingLevel.HIGH: 3,
}


class RatingStatus(str, enum.Enum):
    """Approval workflow state of an employee rating."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Skill:
    """A parent competency in the catalog, e.g. "Frontend"."""
    id: str
    name: str

    def __post_init__(self) -> None:
        if not self.id.strip():
            raise ValueError("Skill id must be non-empty")
        if not self.name.strip():
            raise ValueError("Skill name must be non-empty")


@dataclass(frozen=True)
class Subskill:
    """A leaf competency under a Skill, e.g. "React" under "Frontend"."""
    id: str
    skill_id: str
    name: str

    def __post_init__(self) -> None:
        if not self.id.strip():
            raise ValueError("Subskill id must be non-empty")
        if not self.skill_id.strip():
            raise ValueError("Subskill must reference a skill")
        if not self.name.strip():
            raise ValueError("Subskill name must be non-empty")


@dataclass(frozen=True)
class EmployeeRating:
    """A single employee's rating on one subskill."""
    user_id: str
    skill_id: str
    subskill_id: str
    rating: RatingLevel
    status: RatingStatus = RatingStatus.APPROVED

    def __post_init__(self) -> None:
        object.__setattr__(self, "rating", RatingLevel(self.rating))
        object.__setattr__(self, "status", RatingStatus(self.status))

    @property
    def is_approved(self) -> bool:
        return self.status == RatingStatus.APPROVED


@dataclass(frozen=True)
class RequiredSkill:
    """One staffing requirement of a project.

    A project holds at most one requirement per subskill. The service
    and the project wizard enforce that; the match engine scores whatever
    list it is given.

    required_rating accepts a RatingLevel or its string value.
    """
    skill_id: str
    subskill_id: str
    required_rating: RatingLevel
    skill_name: str = ""
    subskill_name: str = ""

    def __post_init__(self) -> None:
        if not self.subskill_id.strip():
            raise ValueError("Required skill must reference a subskill")
        object.__setattr__(self, "required_rating", RatingLevel(self.required_rating))

    @property
    def diff_key(self) -> tuple[str, str, str]:
        """Identity used when comparing requirement sets between edits."""
        return (self.skill_id, self.subskill_id, self.required_rating.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "skill_name": self.skill_name,
            "subskill_id": self.subskill_id,
            "subskill_name": self.subskill_name,
            "required_rating": self.required_rating.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RequiredSkill:
        return cls(
            skill_id=data["skill_id"],
            subskill_id=data["subskill_id"],
            required_rating=RatingLevel(data["required_rating"]),
            skill_name=data.get("skill_name") or "",
            subskill_name=data.get("subskill_name") or "",
        )
