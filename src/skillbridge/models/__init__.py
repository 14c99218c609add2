"""Core data models for SkillBridge."""

from skillbridge.models.match import EmployeeMatch, SkillDetail
from skillbridge.models.profile import Profile, ProfileStatus, Role
from skillbridge.models.resource import ProjectHistoryItem, ResourceAllocation, UserProject
from skillbridge.models.project import (
    AllocationHistoryEntry,
    AllocationHistoryView,
    AllocationPercentage,
    MemberAllocation,
    Project,
    ProjectAssignment,
    ProjectForm,
    ProjectMember,
    ProjectStatus,
)
from skillbridge.models.skill import (
    EmployeeRating,
    RatingLevel,
    RatingStatus,
    RequiredSkill,
    Skill,
    Subskill,
)

__all__ = [
    "EmployeeMatch",
    "SkillDetail",
    "Profile",
    "ProfileStatus",
    "Role",
    "ProjectHistoryItem",
    "ResourceAllocation",
    "UserProject",
    "AllocationHistoryEntry",
    "AllocationHistoryView",
    "AllocationPercentage",
    "MemberAllocation",
    "Project",
    "ProjectAssignment",
    "ProjectForm",
    "ProjectMember",
    "ProjectStatus",
    "EmployeeRating",
    "RatingLevel",
    "RatingStatus",
    "RequiredSkill",
    "Skill",
    "Subskill",
]
