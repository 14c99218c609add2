"""Profile data models — who works here, in what role, and whether active.

Profiles are owned by the user store. The staffing code only reads
them: candidates for matching are the active employees and tech leads.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class Role(str, enum.Enum):
    """Closed set of user roles."""
    EMPLOYEE = "employee"
    TECH_LEAD = "tech_lead"
    MANAGEMENT = "management"
    ADMIN = "admin"


class ProfileStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass
class Profile:
    """A user's profile as held by the user store."""
    user_id: str
    full_name: str
    email: str
    role: Role
    status: ProfileStatus = ProfileStatus.ACTIVE

    def __post_init__(self) -> None:
        canonical = self.user_id.strip()
        if not canonical:
            raise ValueError("Profile user_id must be non-empty")
        self.user_id = canonical

    @property
    def is_active(self) -> bool:
        return self.status == ProfileStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role.value,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Profile:
        return cls(
            user_id=data["user_id"],
            full_name=data.get("full_name") or "",
            email=data.get("email") or "",
            role=Role(data["role"]),
            status=ProfileStatus(data.get("status", ProfileStatus.ACTIVE.value)),
        )
