"""In-memory registry of active sessions and their attendance ledgers."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from rollcall.domain.geo import Coordinate
from rollcall.domain.sessions import AttendanceRecord, CheckInResult, Session


class AttendanceLedger:
    """Participant check-ins for a single session, in insertion order.

    Methods never await, so each call is atomic with respect to other
    coroutines running on the same event loop.
    """

    def __init__(self) -> None:
        self._records: dict[int, AttendanceRecord] = {}

    def try_check_in(self, participant_id: int, at: datetime) -> CheckInResult:
        """Record a check-in unless the participant is already present."""
        if participant_id in self._records:
            return CheckInResult.ALREADY_PRESENT
        self._records[participant_id] = AttendanceRecord(
            participant_id=participant_id, check_in_time=at
        )
        return CheckInResult.INSERTED

    def contains(self, participant_id: int) -> bool:
        """Return whether the participant has checked in."""
        return participant_id in self._records

    def count(self) -> int:
        """Return the number of checked-in participants."""
        return len(self._records)

    def snapshot(self) -> tuple[AttendanceRecord, ...]:
        """Return a point-in-time copy of the records."""
        return tuple(self._records.values())


@dataclass
class SessionEntry:
    """A live session together with its ledger and lock."""

    session: Session
    ledger: AttendanceLedger = field(default_factory=AttendanceLedger)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionStore:
    """Registry of active sessions keyed by id."""

    def __init__(self) -> None:
        self._entries: dict[UUID, SessionEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def create(  # noqa: PLR0913
        self,
        organizer_id: int,
        channel_id: int,
        name: str,
        anchor: Coordinate,
        radius_meters: float,
        started_at: datetime,
    ) -> Session:
        """Insert a new active session and return it."""
        if not radius_meters > 0:
            raise ValueError("radius_meters must be positive")
        session_id = uuid4()
        while session_id in self._entries:
            session_id = uuid4()
        session = Session(
            id=session_id,
            organizer_id=organizer_id,
            channel_id=channel_id,
            name=name,
            anchor=anchor,
            radius_meters=radius_meters,
            started_at=started_at,
        )
        self._entries[session_id] = SessionEntry(session=session)
        return session

    def get(self, session_id: UUID) -> Session | None:
        """Return an active session by id, if present."""
        entry = self._entries.get(session_id)
        return entry.session if entry else None

    def ledger(self, session_id: UUID) -> AttendanceLedger | None:
        """Return the ledger of an active session, if present."""
        entry = self._entries.get(session_id)
        return entry.ledger if entry else None

    def remove(self, session_id: UUID) -> None:
        """Remove a session and its ledger; absent ids are ignored."""
        self._entries.pop(session_id, None)

    def active_sessions(self) -> list[Session]:
        """Return all active sessions."""
        return [entry.session for entry in self._entries.values()]

    @asynccontextmanager
    async def locked(self, session_id: UUID) -> AsyncIterator[SessionEntry | None]:
        """Hold the session's lock and yield its entry, or None if absent.

        The entry is re-resolved after the lock is acquired so a session
        removed while waiting is reported as absent.
        """
        entry = self._entries.get(session_id)
        if entry is None:
            yield None
            return
        async with entry.lock:
            if self._entries.get(session_id) is not entry:
                yield None
            else:
                yield entry
