"""SkillGraph profile persistence: record stores, sync engine, and record service."""

__version__ = "0.1.0"
