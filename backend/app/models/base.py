"""Shared declarative base and enums for all models."""
from __future__ import annotations

import enum
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class SeverityEnum(str, enum.Enum):
    """Alert severity tiers, ordered LOW < INFO < WARNING < CRITICAL."""
    LOW = "LOW"
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: "SeverityEnum") -> bool:
        return self.rank >= other.rank

    @classmethod
    def at_or_above(cls, floor: "SeverityEnum") -> list["SeverityEnum"]:
        """All tiers at or above ``floor`` — used for minimum-severity filters."""
        return [s for s in cls if s.rank >= floor.rank]


_SEVERITY_RANK = {
    SeverityEnum.LOW: 0,
    SeverityEnum.INFO: 1,
    SeverityEnum.WARNING: 2,
    SeverityEnum.CRITICAL: 3,
}


class GeofenceEventEnum(str, enum.Enum):
    ENTER = "ENTER"
    EXIT = "EXIT"
    APPROACH = "APPROACH"


class CycleRunStatusEnum(str, enum.Enum):
    RUNNING = "running"
    COMPLETE = "complete"
    # At least one detector failed; the others still ran
    PARTIAL = "partial"
