"""Tracks which users have been seen in which channel."""

from dataclasses import dataclass, field


@dataclass
class ChannelRoster:
    """In-memory channel membership learned from incoming messages.

    Entries are never evicted. Size is bounded by the chats the bot is in
    and the users who have posted there.
    """

    _members: dict[int, dict[int, None]] = field(default_factory=dict)

    def remember(self, channel_id: int, user_id: int) -> None:
        """Record that a user is a member of a channel."""
        self._members.setdefault(channel_id, {})[user_id] = None

    def members(self, channel_id: int) -> list[int]:
        """Return known members of a channel in first-seen order."""
        return list(self._members.get(channel_id, {}))
