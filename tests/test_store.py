"""Tests for the session store and attendance ledger."""

import asyncio
import math

import pytest

from rollcall.domain.geo import Coordinate
from rollcall.domain.sessions import CheckInResult, SessionStatus
from rollcall.services.store import AttendanceLedger, SessionStore
from tests.conftest import START_TIME


def _create(store: SessionStore, organizer_id: int = 1):
    return store.create(
        organizer_id=organizer_id,
        channel_id=10,
        name="Standup",
        anchor=Coordinate(0, 0),
        radius_meters=150,
        started_at=START_TIME,
    )


def test_create_returns_active_session_with_unique_ids() -> None:
    store = SessionStore()

    sessions = [_create(store) for _ in range(50)]

    assert len({session.id for session in sessions}) == 50
    assert all(session.status == SessionStatus.ACTIVE for session in sessions)
    assert len(store) == 50
    assert store.get(sessions[0].id) == sessions[0]


@pytest.mark.parametrize("radius", [0, -1, math.nan])
def test_create_rejects_non_positive_radius(radius: float) -> None:
    store = SessionStore()
    with pytest.raises(ValueError):
        store.create(
            organizer_id=1,
            channel_id=10,
            name="Standup",
            anchor=Coordinate(0, 0),
            radius_meters=radius,
            started_at=START_TIME,
        )
    assert len(store) == 0


def test_remove_is_idempotent_and_drops_ledger() -> None:
    store = SessionStore()
    session = _create(store)
    ledger = store.ledger(session.id)
    assert ledger is not None
    ledger.try_check_in(2, START_TIME)

    store.remove(session.id)
    store.remove(session.id)

    assert store.get(session.id) is None
    assert store.ledger(session.id) is None
    assert store.active_sessions() == []


def test_stores_are_independent() -> None:
    first = SessionStore()
    second = SessionStore()
    session = _create(first)

    assert second.get(session.id) is None


def test_ledger_rejects_duplicate_check_in() -> None:
    ledger = AttendanceLedger()
    later = START_TIME.replace(minute=30)

    assert ledger.try_check_in(7, START_TIME) is CheckInResult.INSERTED
    assert ledger.try_check_in(7, later) is CheckInResult.ALREADY_PRESENT

    assert ledger.count() == 1
    assert ledger.snapshot()[0].check_in_time == START_TIME


def test_ledger_snapshot_keeps_insertion_order_and_is_a_copy() -> None:
    ledger = AttendanceLedger()
    for participant_id in (5, 3, 9):
        ledger.try_check_in(participant_id, START_TIME)

    snapshot = ledger.snapshot()
    ledger.try_check_in(1, START_TIME)

    assert [record.participant_id for record in snapshot] == [5, 3, 9]
    assert ledger.count() == 4


def test_locked_yields_none_for_unknown_session() -> None:
    store = SessionStore()
    session = _create(store)
    store.remove(session.id)

    async def scenario():
        async with store.locked(session.id) as entry:
            return entry

    assert asyncio.run(scenario()) is None


def test_locked_sees_removal_made_while_waiting() -> None:
    store = SessionStore()
    session = _create(store)

    async def scenario():
        seen = []

        async def remover() -> None:
            async with store.locked(session.id) as entry:
                assert entry is not None
                await asyncio.sleep(0)
                store.remove(session.id)

        async def waiter() -> None:
            async with store.locked(session.id) as entry:
                seen.append(entry)

        await asyncio.gather(remover(), waiter())
        return seen

    assert asyncio.run(scenario()) == [None]
