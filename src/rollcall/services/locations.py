"""Participant location sources."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from rollcall.domain.geo import Coordinate


class LocationUnavailableError(Exception):
    """Raised when a participant's position cannot be verified."""


class LocationProvider(Protocol):
    """Interface for resolving a participant's current position."""

    async def locate(self, participant_id: int) -> Coordinate:
        """Return the participant's coordinate or raise LocationUnavailableError."""


@dataclass(frozen=True)
class LocationFix:
    """A reported position with its timestamp and optional accuracy."""

    coordinate: Coordinate
    recorded_at: datetime
    accuracy_meters: float | None = None


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class InMemoryLocationProvider(LocationProvider):
    """Keeps the latest shared location of each participant.

    A fix is only returned while it is younger than ``max_age_seconds`` and,
    when ``max_accuracy_meters`` is set, at least that accurate. Expired
    fixes are evicted on write and on read.
    """

    max_age_seconds: int = 900
    max_accuracy_meters: float | None = None
    clock: Callable[[], datetime] = _utc_now
    _fixes: dict[int, LocationFix] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._fixes)

    def update(
        self,
        participant_id: int,
        coordinate: Coordinate,
        recorded_at: datetime | None = None,
        accuracy_meters: float | None = None,
    ) -> None:
        """Store a new fix unless a more recent one is already known."""
        fix = LocationFix(
            coordinate=coordinate,
            recorded_at=recorded_at or self.clock(),
            accuracy_meters=accuracy_meters,
        )
        current = self._fixes.get(participant_id)
        if current is not None and current.recorded_at > fix.recorded_at:
            return
        self._fixes[participant_id] = fix
        self._evict_expired()

    def forget(self, participant_id: int) -> None:
        """Drop the stored fix for a participant."""
        self._fixes.pop(participant_id, None)

    async def locate(self, participant_id: int) -> Coordinate:
        """Return the participant's fresh coordinate."""
        fix = self._fixes.get(participant_id)
        if fix is None:
            raise LocationUnavailableError(f"No location for {participant_id}")
        age = self.clock() - fix.recorded_at
        if age > timedelta(seconds=self.max_age_seconds):
            self._fixes.pop(participant_id, None)
            raise LocationUnavailableError(
                f"Location for {participant_id} is {int(age.total_seconds())}s old"
            )
        if (
            self.max_accuracy_meters is not None
            and fix.accuracy_meters is not None
            and fix.accuracy_meters > self.max_accuracy_meters
        ):
            raise LocationUnavailableError(
                f"Location for {participant_id} is only accurate to "
                f"{fix.accuracy_meters:.0f}m"
            )
        return fix.coordinate

    def _evict_expired(self) -> None:
        cutoff = self.clock() - timedelta(seconds=self.max_age_seconds)
        expired = [
            participant_id
            for participant_id, fix in self._fixes.items()
            if fix.recorded_at < cutoff
        ]
        for participant_id in expired:
            del self._fixes[participant_id]
