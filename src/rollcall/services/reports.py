"""Attendance report building and formatting."""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from rollcall.domain.reports import Report, ReportEntry
from rollcall.domain.sessions import AttendanceRecord, Session

logger = logging.getLogger(__name__)

UNKNOWN_PARTICIPANT = "Unknown participant"


class DirectoryLookup(Protocol):
    """Interface for resolving participant display names."""

    async def resolve(self, participant_id: int) -> str:
        """Return a display name for the participant."""


@dataclass
class ReportBuilder:
    """Build attendance reports from a session and its ledger snapshot."""

    directory: DirectoryLookup

    async def build(
        self,
        session: Session,
        snapshot: tuple[AttendanceRecord, ...],
        now: datetime,
    ) -> Report:
        """Resolve attendee names and compute the session duration."""
        names = await asyncio.gather(
            *(self.display_name(record.participant_id) for record in snapshot)
        )
        attendees = tuple(
            ReportEntry(
                participant_id=record.participant_id,
                display_name=name,
                check_in_time=record.check_in_time,
            )
            for record, name in zip(snapshot, names, strict=True)
        )
        return Report(
            session_id=session.id,
            session_name=session.name,
            started_at=session.started_at,
            generated_at=now,
            duration_minutes=_duration_minutes(session.started_at, now),
            attendees=attendees,
        )

    async def display_name(self, participant_id: int) -> str:
        """Resolve a participant name, falling back to a placeholder."""
        try:
            name = await self.directory.resolve(participant_id)
        except Exception:
            logger.warning("Failed to resolve participant %s", participant_id)
            return UNKNOWN_PARTICIPANT
        return name or UNKNOWN_PARTICIPANT


def _duration_minutes(started_at: datetime, now: datetime) -> int:
    """Round elapsed minutes half up."""
    minutes = (now - started_at).total_seconds() / 60
    return max(0, math.floor(minutes + 0.5))


def format_report(report: Report, final: bool = False) -> str:
    """Render a report as a chat message."""
    title = "Final attendance" if final else "Attendance so far"
    lines = [
        f"{title} for {report.session_name}",
        f"Duration: {report.duration_minutes} min",
        f"Attendees: {report.attendee_count}",
    ]
    for entry in report.attendees:
        checked_in = entry.check_in_time.astimezone(UTC).strftime("%H:%M UTC")
        lines.append(f"- {entry.display_name} ({checked_in})")
    if not report.attendees:
        lines.append("No one has checked in.")
    return "\n".join(lines)
