"""Exception types raised across SkillBridge.

Model validation raises plain ValueError. The types here cover the
failures that callers are expected to catch and report.
"""

from __future__ import annotations


class SkillBridgeError(Exception):
    """Base class for SkillBridge failures."""


class StoreError(SkillBridgeError):
    """A store could not complete a read or write."""


class MatchLoadError(SkillBridgeError):
    """Matching failed because some candidate data could not be fetched.

    Matching is all-or-nothing: one failed fetch fails the whole call.
    """

    def __init__(self, message: str = "Failed to load matches") -> None:
        super().__init__(message)


class StaleMatchError(SkillBridgeError):
    """A match result arrived after a newer matching request was issued."""


class CapacityError(SkillBridgeError):
    """An allocation exceeds the member's available capacity."""

    def __init__(self, full_name: str, available: int) -> None:
        self.full_name = full_name
        self.available = available
        super().__init__(f"{full_name} only has {available}% capacity available")
