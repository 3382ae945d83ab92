"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest

from rollcall.adapters.telegram_client import TelegramClient
from rollcall.adapters.telegram_notifier import TelegramDirectory, TelegramNotifier
from rollcall.config import Settings
from rollcall.containers import AppContainer
from rollcall.domain.geo import Coordinate
from rollcall.domain.reports import Report
from rollcall.services.lifecycle import Notifier, SessionLifecycle
from rollcall.services.locations import (
    InMemoryLocationProvider,
    LocationProvider,
    LocationUnavailableError,
)
from rollcall.services.reports import DirectoryLookup, ReportBuilder
from rollcall.services.roster import ChannelRoster
from rollcall.services.store import SessionStore

START_TIME = datetime(2026, 5, 1, 18, 0, tzinfo=UTC)


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = START_TIME

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class FakeLocationProvider(LocationProvider):
    """Location provider backed by a fixed mapping."""

    coordinates: dict[int, Coordinate] = field(default_factory=dict)
    broken: set[int] = field(default_factory=set)
    calls: list[int] = field(default_factory=list)

    async def locate(self, participant_id: int) -> Coordinate:
        self.calls.append(participant_id)
        await asyncio.sleep(0)
        if participant_id in self.broken:
            raise RuntimeError("gps timeout")
        if participant_id not in self.coordinates:
            raise LocationUnavailableError(f"No location for {participant_id}")
        return self.coordinates[participant_id]


@dataclass
class FakeNotifier(Notifier):
    """Notifier that records deliveries."""

    invites: list[tuple[int, UUID, str]] = field(default_factory=list)
    updates: list[tuple[int, str]] = field(default_factory=list)
    summaries: list[tuple[int, Report]] = field(default_factory=list)
    failing: set[int] = field(default_factory=set)

    async def send_invite(
        self, participant_id: int, session_id: UUID, session_name: str
    ) -> None:
        if participant_id in self.failing:
            raise RuntimeError("blocked by user")
        self.invites.append((participant_id, session_id, session_name))

    async def send_update(self, target: int, content: str) -> None:
        if target in self.failing:
            raise RuntimeError("blocked by user")
        self.updates.append((target, content))

    async def send_summary(self, organizer_id: int, report: Report) -> None:
        if organizer_id in self.failing:
            raise RuntimeError("blocked by user")
        self.summaries.append((organizer_id, report))


@dataclass
class FakeDirectory(DirectoryLookup):
    """Directory with a fixed set of names; unknown ids fail."""

    names: dict[int, str] = field(default_factory=dict)

    async def resolve(self, participant_id: int) -> str:
        if participant_id not in self.names:
            raise LookupError(participant_id)
        return self.names[participant_id]


@dataclass
class FakeTelegramClient(TelegramClient):
    """Fake Telegram client that records messages."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    markups: list[dict | None] = field(default_factory=list)
    callbacks: list[tuple[str, str | None]] = field(default_factory=list)
    chats: dict[int, dict[str, object]] = field(default_factory=dict)
    commands: list[dict[str, str]] | None = None
    menu_button: dict[str, object] | None = None

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> None:
        self.messages.append((chat_id, text))
        self.markups.append(reply_markup)

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> None:
        self.callbacks.append((callback_query_id, text))

    async def get_chat(self, chat_id: int) -> dict[str, object]:
        return self.chats.get(chat_id, {})

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands

    async def set_chat_menu_button(
        self, menu_button: dict[str, object] | None = None
    ) -> None:
        self.menu_button = menu_button


def build_lifecycle(
    locations: LocationProvider,
    notifier: FakeNotifier | None = None,
    directory: FakeDirectory | None = None,
    clock: FakeClock | None = None,
    store: SessionStore | None = None,
) -> SessionLifecycle:
    """Build a lifecycle over fakes."""
    return SessionLifecycle(
        store=store if store is not None else SessionStore(),
        locations=locations,
        notifier=notifier or FakeNotifier(),
        reports=ReportBuilder(directory or FakeDirectory()),
        clock=clock or FakeClock(),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(telegram_bot_token="test-token")


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient(
        chats={
            100: {"id": 100, "first_name": "Olga", "last_name": "Organizer"},
            200: {"id": 200, "first_name": "Pavel"},
        }
    )


@pytest.fixture
def container(
    settings: Settings, telegram_client: FakeTelegramClient
) -> AppContainer:
    store = SessionStore()
    location_provider = InMemoryLocationProvider(
        max_age_seconds=settings.location_max_age_seconds,
        clock=lambda: datetime.fromtimestamp(1700000100, tz=UTC),
    )
    lifecycle = SessionLifecycle(
        store=store,
        locations=location_provider,
        notifier=TelegramNotifier(telegram_client),
        reports=ReportBuilder(TelegramDirectory(telegram_client)),
        default_name=settings.default_session_name,
        default_radius_meters=settings.default_radius_meters,
    )

    async def close_resources() -> None:
        await lifecycle.wait_idle()

    return AppContainer(
        settings=settings,
        telegram_client=telegram_client,
        session_store=store,
        location_provider=location_provider,
        roster=ChannelRoster(),
        lifecycle=lifecycle,
        close_resources=close_resources,
    )
