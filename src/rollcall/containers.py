"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from rollcall.adapters.telegram_client import HttpxTelegramClient, TelegramClient
from rollcall.adapters.telegram_notifier import TelegramDirectory, TelegramNotifier
from rollcall.config import Settings
from rollcall.services.lifecycle import SessionLifecycle
from rollcall.services.locations import InMemoryLocationProvider
from rollcall.services.reports import ReportBuilder
from rollcall.services.roster import ChannelRoster
from rollcall.services.store import SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    session_store: SessionStore
    location_provider: InMemoryLocationProvider
    roster: ChannelRoster
    lifecycle: SessionLifecycle
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    session_store = SessionStore()
    location_provider = InMemoryLocationProvider(
        max_age_seconds=resolved_settings.location_max_age_seconds,
        max_accuracy_meters=resolved_settings.location_max_accuracy_meters,
    )
    lifecycle = SessionLifecycle(
        store=session_store,
        locations=location_provider,
        notifier=TelegramNotifier(telegram_client),
        reports=ReportBuilder(TelegramDirectory(telegram_client)),
        default_name=resolved_settings.default_session_name,
        default_radius_meters=resolved_settings.default_radius_meters,
    )

    async def close_resources() -> None:
        await lifecycle.wait_idle()
        await telegram_client.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        session_store=session_store,
        location_provider=location_provider,
        roster=ChannelRoster(),
        lifecycle=lifecycle,
        close_resources=close_resources,
    )
