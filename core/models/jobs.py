"""Job model -- declarative job definitions read from config.yaml."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from scheduler.cron import CronExpression


class JobConfig(BaseModel):
    """A shell command to run whenever `schedule` matches.

    The schedule is parsed at load time so a bad expression fails the
    whole config instead of surfacing when the scheduler starts.
    """

    id: str = Field(min_length=1)
    schedule: str
    command: str = Field(min_length=1)
    description: str = ""
    enabled: bool = True

    @field_validator("schedule")
    @classmethod
    def _validate_schedule(cls, value: str) -> str:
        CronExpression.parse(value)
        return value.strip()
