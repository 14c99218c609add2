"""Matching subsystem — scores and ranks candidates against required skills."""

from skillbridge.matching.engine import CandidateSnapshot, SkillMatchEngine
from skillbridge.matching.matcher import EmployeeMatcher, MatchRequestTracker

__all__ = [
    "CandidateSnapshot",
    "SkillMatchEngine",
    "EmployeeMatcher",
    "MatchRequestTracker",
]
