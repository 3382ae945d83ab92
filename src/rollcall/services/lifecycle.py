"""Session lifecycle: start, check-in, attendance reports and end."""

import asyncio
import logging
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID

from rollcall.domain.reports import (
    CheckInOutcome,
    Report,
    ReportOutcome,
    ReportResult,
    StartOutcome,
    StartResult,
)
from rollcall.domain.sessions import CheckInResult, Session, SessionStatus
from rollcall.services.locations import LocationProvider, LocationUnavailableError
from rollcall.services.proximity import ProximityEngine
from rollcall.services.reports import ReportBuilder
from rollcall.services.store import SessionStore

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Interface for delivering messages to participants and organizers."""

    async def send_invite(
        self, participant_id: int, session_id: UUID, session_name: str
    ) -> None:
        """Invite a participant to check in."""

    async def send_update(self, target: int, content: str) -> None:
        """Send a short informational message."""

    async def send_summary(self, organizer_id: int, report: Report) -> None:
        """Send the final attendance summary."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionLifecycle:
    """State machine for gathering sessions.

    Only in-memory mutations run under a session's lock; calls to the
    location provider, directory and notifier happen outside of it.
    """

    store: SessionStore
    locations: LocationProvider
    notifier: Notifier
    reports: ReportBuilder
    proximity: ProximityEngine = field(default_factory=ProximityEngine)
    default_name: str = "Ad-hoc gathering"
    default_radius_meters: float = 150.0
    clock: Callable[[], datetime] = _utc_now
    _background: set[asyncio.Task[None]] = field(default_factory=set)

    async def start(  # noqa: PLR0913
        self,
        organizer_id: int,
        channel_id: int,
        name: str | None,
        candidates: Iterable[int],
        radius_meters: float | None = None,
    ) -> StartResult:
        """Create a session at the organizer's position and invite those nearby."""
        try:
            anchor = await self.locations.locate(organizer_id)
        except LocationUnavailableError:
            logger.info("Organizer %s has no usable location", organizer_id)
            return StartResult(outcome=StartOutcome.LOCATION_UNAVAILABLE)
        except Exception:
            logger.exception("Failed to locate organizer %s", organizer_id)
            return StartResult(outcome=StartOutcome.LOCATION_UNAVAILABLE)

        session = self.store.create(
            organizer_id=organizer_id,
            channel_id=channel_id,
            name=(name or "").strip() or self.default_name,
            anchor=anchor,
            radius_meters=(
                self.default_radius_meters if radius_meters is None else radius_meters
            ),
            started_at=self.clock(),
        )
        invitees = [
            participant_id
            for participant_id in dict.fromkeys(candidates)
            if participant_id != organizer_id
        ]
        results = await asyncio.gather(
            *(self._invite(session, participant_id) for participant_id in invitees)
        )
        notified = sum(1 for delivered in results if delivered)
        logger.info(
            "Started session %s in channel %s: notified %s of %s candidates",
            session.id,
            channel_id,
            notified,
            len(invitees),
        )
        return StartResult(
            outcome=StartOutcome.STARTED, session=session, notified_count=notified
        )

    async def check_in(self, session_id: UUID, participant_id: int) -> CheckInOutcome:
        """Record a participant as present if they are inside the geofence."""
        session = self.store.get(session_id)
        if session is None:
            return CheckInOutcome.NOT_FOUND
        ledger = self.store.ledger(session_id)
        if ledger is not None and ledger.contains(participant_id):
            return CheckInOutcome.ALREADY_PRESENT

        try:
            coordinate = await self.locations.locate(participant_id)
        except LocationUnavailableError:
            return CheckInOutcome.LOCATION_UNAVAILABLE
        except Exception:
            logger.exception("Failed to locate participant %s", participant_id)
            return CheckInOutcome.LOCATION_UNAVAILABLE
        if not self.proximity.within_range(session, coordinate):
            return CheckInOutcome.OUT_OF_RANGE

        async with self.store.locked(session_id) as entry:
            if entry is None:
                return CheckInOutcome.NOT_FOUND
            result = entry.ledger.try_check_in(participant_id, self.clock())
        if result is CheckInResult.ALREADY_PRESENT:
            return CheckInOutcome.ALREADY_PRESENT

        self._spawn(self._announce_check_in(session, participant_id))
        return CheckInOutcome.CHECKED_IN

    async def view_attendance(
        self, session_id: UUID, requester_id: int
    ) -> ReportResult:
        """Return the current attendance report to the organizer."""
        session = self.store.get(session_id)
        ledger = self.store.ledger(session_id)
        if session is None or ledger is None:
            return ReportResult(outcome=ReportOutcome.NOT_FOUND)
        if requester_id != session.organizer_id:
            return ReportResult(outcome=ReportOutcome.UNAUTHORIZED)
        report = await self.reports.build(session, ledger.snapshot(), self.clock())
        return ReportResult(outcome=ReportOutcome.OK, report=report)

    async def end(self, session_id: UUID, requester_id: int) -> ReportResult:
        """End a session, remove it and send the organizer the final report."""
        async with self.store.locked(session_id) as entry:
            if entry is None:
                return ReportResult(outcome=ReportOutcome.NOT_FOUND)
            if requester_id != entry.session.organizer_id:
                return ReportResult(outcome=ReportOutcome.UNAUTHORIZED)
            session = replace(entry.session, status=SessionStatus.ENDED)
            snapshot = entry.ledger.snapshot()
            self.store.remove(session_id)

        report = await self.reports.build(session, snapshot, self.clock())
        logger.info(
            "Ended session %s with %s attendees", session.id, report.attendee_count
        )
        try:
            await self.notifier.send_summary(session.organizer_id, report)
        except Exception:
            logger.exception("Failed to send summary for session %s", session.id)
        return ReportResult(outcome=ReportOutcome.OK, report=report)

    async def wait_idle(self) -> None:
        """Wait for outstanding background notifications."""
        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def _invite(self, session: Session, participant_id: int) -> bool:
        try:
            coordinate = await self.locations.locate(participant_id)
        except LocationUnavailableError:
            return False
        except Exception:
            logger.exception("Failed to locate participant %s", participant_id)
            return False
        if not self.proximity.within_range(session, coordinate):
            return False
        try:
            await self.notifier.send_invite(participant_id, session.id, session.name)
        except Exception:
            logger.exception("Failed to invite participant %s", participant_id)
            return False
        return True

    async def _announce_check_in(self, session: Session, participant_id: int) -> None:
        name = await self.reports.display_name(participant_id)
        try:
            await self.notifier.send_update(
                session.organizer_id, f"{name} checked in to {session.name}."
            )
        except Exception:
            logger.exception(
                "Failed to notify organizer of check-in for session %s", session.id
            )

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
