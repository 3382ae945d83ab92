"""Domain models for lifecycle outcomes and attendance reports."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from rollcall.domain.sessions import Session


class StartOutcome(str, Enum):
    """Outcome of starting a session."""

    STARTED = "STARTED"
    LOCATION_UNAVAILABLE = "LOCATION_UNAVAILABLE"


class CheckInOutcome(str, Enum):
    """Outcome of a participant check-in."""

    CHECKED_IN = "CHECKED_IN"
    ALREADY_PRESENT = "ALREADY_PRESENT"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    LOCATION_UNAVAILABLE = "LOCATION_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"


class ReportOutcome(str, Enum):
    """Outcome of a privileged report request."""

    OK = "OK"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class ReportEntry:
    """One attendee line in a report."""

    participant_id: int
    display_name: str
    check_in_time: datetime


@dataclass(frozen=True)
class Report:
    """Attendance summary for a session."""

    session_id: UUID
    session_name: str
    started_at: datetime
    generated_at: datetime
    duration_minutes: int
    attendees: tuple[ReportEntry, ...]

    @property
    def attendee_count(self) -> int:
        """Return the number of checked-in participants."""
        return len(self.attendees)


@dataclass(frozen=True)
class StartResult:
    """Result of starting a session."""

    outcome: StartOutcome
    session: Session | None = None
    notified_count: int = 0


@dataclass(frozen=True)
class ReportResult:
    """Result of viewing or ending a session."""

    outcome: ReportOutcome
    report: Report | None = None
