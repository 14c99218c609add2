"""SkillBridge — skills tracking, employee matching and project staffing."""

__version__ = "0.1.0"
