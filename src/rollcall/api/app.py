"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from uuid import UUID

from fastapi import FastAPI, Request

from rollcall.adapters.telegram_notifier import callback_data, inline_keyboard
from rollcall.api.telegram_models import (
    TelegramCallbackQuery,
    TelegramMessage,
    TelegramUpdate,
)
from rollcall.app_logging import configure_logging
from rollcall.config import parse_allowed_user_ids
from rollcall.containers import AppContainer
from rollcall.domain.geo import Coordinate
from rollcall.domain.reports import (
    CheckInOutcome,
    ReportOutcome,
    StartOutcome,
    StartResult,
)
from rollcall.services.reports import format_report
from rollcall.telegram_commands import CHAT_MENU_BUTTON, telegram_commands

_GROUP_CHAT_TYPES = {"group", "supergroup"}

HELP_TEXT = (
    "Rollcall records who is actually at a gathering.\n"
    "1. Share your location with me in this private chat "
    "(live location works best).\n"
    "2. In a group, the organizer sends /gather [name].\n"
    "3. Members near the organizer get a Check in button; "
    "check-in only succeeds while you are in range."
)

_CHECK_IN_REPLIES = {
    CheckInOutcome.CHECKED_IN: "You're checked in!",
    CheckInOutcome.ALREADY_PRESENT: "You're already checked in.",
    CheckInOutcome.OUT_OF_RANGE: "You're too far from the gathering to check in.",
    CheckInOutcome.LOCATION_UNAVAILABLE: (
        "I don't have a recent location for you. Share it with me and try again."
    ),
    CheckInOutcome.NOT_FOUND: "This gathering has ended.",
}

_REPORT_REPLIES = {
    ReportOutcome.UNAUTHORIZED: "Only the organizer can do that.",
    ReportOutcome.NOT_FOUND: "This gathering has ended.",
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    allowed_user_ids = parse_allowed_user_ids(
        container.settings.telegram_allowed_user_ids
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.telegram_client.set_my_commands(
                telegram_commands()
            )
            await app.state.container.telegram_client.set_chat_menu_button(
                CHAT_MENU_BUTTON
            )
        except Exception:
            logger.exception("Failed to sync Telegram bot commands")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        update: TelegramUpdate, request: Request
    ) -> dict[str, str]:
        """Handle Telegram webhook updates."""
        state_container: AppContainer = request.app.state.container
        user_id = _extract_user_id(update)
        if user_id is not None and not _is_user_allowed(user_id, allowed_user_ids):
            state_container.location_provider.forget(user_id)
            if update.callback_query:
                await state_container.telegram_client.answer_callback_query(
                    update.callback_query.id,
                    text="Not authorized.",
                )
                return {"status": "ok"}
            if update.message:
                await state_container.telegram_client.send_message(
                    chat_id=update.message.chat.id,
                    text="This bot is private.",
                )
            return {"status": "ok"}

        if update.callback_query:
            await _handle_callback(state_container, update.callback_query)
            return {"status": "ok"}

        message = update.message or update.edited_message
        if message is None or message.from_user is None:
            return {"status": "ok"}
        if message.chat.type in _GROUP_CHAT_TYPES:
            state_container.roster.remember(message.chat.id, message.from_user.id)

        if message.location:
            _record_location(state_container, message)
            if message.chat.type == "private" and update.message is not None:
                await state_container.telegram_client.send_message(
                    chat_id=message.chat.id,
                    text="Got your location. Keep sharing it to check in.",
                )
            return {"status": "ok"}

        if update.message is None or not message.text:
            return {"status": "ok"}
        command, _, args = message.text.partition(" ")
        command = command.split("@", maxsplit=1)[0]
        if command in {"/start", "/help"}:
            await state_container.telegram_client.send_message(
                chat_id=message.chat.id, text=HELP_TEXT
            )
        elif command == "/gather":
            await _handle_gather(state_container, message, args)
        return {"status": "ok"}

    return app


async def _handle_gather(
    state_container: AppContainer, message: TelegramMessage, args: str
) -> None:
    """Start a gathering in a group chat."""
    telegram_client = state_container.telegram_client
    if message.chat.type not in _GROUP_CHAT_TYPES or message.from_user is None:
        await telegram_client.send_message(
            chat_id=message.chat.id, text="Use /gather in a group chat."
        )
        return
    result = await state_container.lifecycle.start(
        organizer_id=message.from_user.id,
        channel_id=message.chat.id,
        name=args,
        candidates=state_container.roster.members(message.chat.id),
    )
    if result.outcome is StartOutcome.LOCATION_UNAVAILABLE or result.session is None:
        await telegram_client.send_message(
            chat_id=message.chat.id,
            text=(
                "I need your current location first. Share it with me in a "
                "private chat, then send /gather again."
            ),
        )
        return
    await telegram_client.send_message(
        chat_id=message.chat.id,
        text=_format_started(result),
        reply_markup=inline_keyboard(
            [
                ("Check in", callback_data(result.session.id, "checkin")),
                ("View attendance", callback_data(result.session.id, "view")),
                ("End", callback_data(result.session.id, "end")),
            ]
        ),
    )


async def _handle_callback(
    state_container: AppContainer, callback: TelegramCallbackQuery
) -> None:
    """Route check-in, view and end buttons to the session lifecycle."""
    telegram_client = state_container.telegram_client
    lifecycle = state_container.lifecycle
    parsed = _parse_attendance_callback(callback.data or "")
    if parsed is None:
        await telegram_client.answer_callback_query(callback.id)
        return
    session_id, action = parsed
    actor_id = callback.from_user.id

    if action == "checkin":
        outcome = await lifecycle.check_in(session_id, actor_id)
        await telegram_client.answer_callback_query(
            callback.id, text=_CHECK_IN_REPLIES[outcome]
        )
        return

    if action == "view":
        result = await lifecycle.view_attendance(session_id, actor_id)
        if result.outcome is ReportOutcome.OK and result.report is not None:
            await telegram_client.send_message(
                chat_id=actor_id, text=format_report(result.report)
            )
            await telegram_client.answer_callback_query(
                callback.id, text="Attendance sent to you privately."
            )
            return
        await telegram_client.answer_callback_query(
            callback.id, text=_REPORT_REPLIES[result.outcome]
        )
        return

    if action == "end":
        result = await lifecycle.end(session_id, actor_id)
        if result.outcome is ReportOutcome.OK and result.report is not None:
            await telegram_client.answer_callback_query(
                callback.id, text="Gathering ended."
            )
            if callback.message:
                await telegram_client.send_message(
                    chat_id=callback.message.chat.id,
                    text=(
                        f"{result.report.session_name} has ended with "
                        f"{result.report.attendee_count} attendee(s)."
                    ),
                )
            return
        await telegram_client.answer_callback_query(
            callback.id, text=_REPORT_REPLIES[result.outcome]
        )
        return

    await telegram_client.answer_callback_query(callback.id)


def _record_location(state_container: AppContainer, message: TelegramMessage) -> None:
    """Store the sender's shared location."""
    if message.location is None or message.from_user is None:
        return
    recorded_at = datetime.fromtimestamp(message.edit_date or message.date, tz=UTC)
    state_container.location_provider.update(
        message.from_user.id,
        Coordinate(
            latitude=message.location.latitude,
            longitude=message.location.longitude,
        ),
        recorded_at=recorded_at,
        accuracy_meters=message.location.horizontal_accuracy,
    )


def _extract_user_id(update: TelegramUpdate) -> int | None:
    """Extract Telegram user id from update, if present."""
    if update.callback_query:
        return update.callback_query.from_user.id
    message = update.message or update.edited_message
    if message and message.from_user:
        return message.from_user.id
    return None


def _is_user_allowed(user_id: int, allowed: set[int] | None) -> bool:
    """Return true when the user is allowed to interact with the bot."""
    return allowed is None or user_id in allowed


def _parse_attendance_callback(data: str) -> tuple[UUID, str] | None:
    """Parse callback data in the format a:<uuid>:<action>."""
    if not data.startswith("a:"):
        return None
    parts = data.split(":")
    if len(parts) != 3:  # noqa: PLR2004
        return None
    _, session_id, action = parts
    try:
        return UUID(session_id), action
    except ValueError:
        return None


def _format_started(result: StartResult) -> str:
    session = result.session
    if session is None:
        return ""
    return (
        f"{session.name} started. Check-in radius: {session.radius_meters:.0f} m.\n"
        f"Notified {result.notified_count} nearby member(s). Anyone in range can "
        "tap Check in."
    )
