"""Domain models for gathering sessions and attendance."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from rollcall.domain.geo import Coordinate


class SessionStatus(str, Enum):
    """Lifecycle state of a gathering session."""

    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


@dataclass(frozen=True)
class Session:
    """Represents a gathering anchored at the organizer's position."""

    id: UUID
    organizer_id: int
    channel_id: int
    name: str
    anchor: Coordinate
    radius_meters: float
    started_at: datetime
    status: SessionStatus = SessionStatus.ACTIVE


@dataclass(frozen=True)
class AttendanceRecord:
    """First successful check-in of a participant."""

    participant_id: int
    check_in_time: datetime


class CheckInResult(str, Enum):
    """Result of a ledger insert attempt."""

    INSERTED = "INSERTED"
    ALREADY_PRESENT = "ALREADY_PRESENT"
