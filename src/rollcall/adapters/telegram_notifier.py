"""Telegram-backed notifier and directory lookup."""

from dataclasses import dataclass
from uuid import UUID

from rollcall.adapters.telegram_client import TelegramClient
from rollcall.domain.reports import Report
from rollcall.services.reports import format_report


def callback_data(session_id: UUID, action: str) -> str:
    """Build callback_data within Telegram's 64-byte limit."""
    return f"a:{session_id}:{action}"


def inline_keyboard(buttons: list[tuple[str, str]]) -> dict:
    """Build a Telegram inline keyboard payload."""
    return {
        "inline_keyboard": [
            [{"text": label, "callback_data": callback}] for label, callback in buttons
        ]
    }


@dataclass
class TelegramNotifier:
    """Deliver invites and updates as direct Telegram messages."""

    telegram_client: TelegramClient

    async def send_invite(
        self, participant_id: int, session_id: UUID, session_name: str
    ) -> None:
        """Send a check-in button to a nearby participant."""
        await self.telegram_client.send_message(
            chat_id=participant_id,
            text=(
                f"{session_name} is happening near you. "
                "Tap below to check in (your location must be shared)."
            ),
            reply_markup=inline_keyboard(
                [("Check in", callback_data(session_id, "checkin"))]
            ),
        )

    async def send_update(self, target: int, content: str) -> None:
        """Send a plain text update."""
        await self.telegram_client.send_message(chat_id=target, text=content)

    async def send_summary(self, organizer_id: int, report: Report) -> None:
        """Send the final report to the organizer."""
        await self.telegram_client.send_message(
            chat_id=organizer_id, text=format_report(report, final=True)
        )


@dataclass
class TelegramDirectory:
    """Resolve display names through Telegram's getChat."""

    telegram_client: TelegramClient

    async def resolve(self, participant_id: int) -> str:
        """Return the user's full name, falling back to their username."""
        chat = await self.telegram_client.get_chat(participant_id)
        parts = [chat.get("first_name"), chat.get("last_name")]
        full_name = " ".join(str(part) for part in parts if part)
        if full_name:
            return full_name
        username = chat.get("username")
        if username:
            return f"@{username}"
        raise LookupError(f"No name for {participant_id}")
