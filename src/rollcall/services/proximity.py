"""Geofence evaluation for sessions."""

from dataclasses import dataclass

from rollcall.domain.geo import Coordinate, distance
from rollcall.domain.sessions import Session


@dataclass(frozen=True)
class ProximityEngine:
    """Decide whether a coordinate lies inside a session's geofence."""

    def within_range(self, session: Session, coordinate: Coordinate) -> bool:
        """Return True when the coordinate is within the session radius."""
        return distance(session.anchor, coordinate) <= session.radius_meters
