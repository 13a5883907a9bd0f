"""Pydantic data models shared across components."""

from core.models.jobs import JobConfig

__all__ = [
    "JobConfig",
]
