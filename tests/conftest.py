"""Shared fixtures for role bot tests.

Discord objects are replaced with small fakes that record the calls the bot
makes (send, add_reaction, add_roles, ...).
"""

import sys
from itertools import count
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path so we can import modules directly
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import AppConfig, DiscordConfig  # noqa: E402
from roles import DEFAULT_CATEGORIES, required_emoji  # noqa: E402

GUILD_ID = 1000
CHANNEL_ID = 2000
BOT_USER_ID = 9999
USER_ID = 4242

_ids = count(50_000)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMessage:
    def __init__(self, embeds=None, reactions=None):
        self.id = next(_ids)
        self.embeds = list(embeds or [])
        self.reactions = list(reactions or [])
        self.add_reaction = AsyncMock(side_effect=self._add_reaction)

    async def _add_reaction(self, emoji):
        self.reactions.append(SimpleNamespace(emoji=emoji))


class FakeChannel:
    def __init__(self, channel_id: int = CHANNEL_ID, messages=None):
        self.id = channel_id
        self.messages = list(messages or [])
        self.send = AsyncMock(side_effect=self._send)

    async def history(self, limit: int = 100):
        for message in self.messages[:limit]:
            yield message

    async def _send(self, content=None, *, embed=None):
        message = FakeMessage(embeds=[embed] if embed is not None else [])
        self.messages.insert(0, message)
        return message

    @property
    def reaction_calls(self) -> int:
        return sum(m.add_reaction.await_count for m in self.messages)


def make_emoji(name: str, emoji_id: int | None = None):
    return SimpleNamespace(name=name, id=emoji_id if emoji_id is not None else next(_ids))


def make_role(name: str):
    return SimpleNamespace(name=name, id=next(_ids))


def make_member(user_id: int = USER_ID, bot: bool = False):
    return SimpleNamespace(
        id=user_id,
        bot=bot,
        display_name=f"user{user_id}",
        add_roles=AsyncMock(),
        remove_roles=AsyncMock(),
    )


def make_payload(
    message_id: int,
    emoji_name: str = "LeviathanWakes",
    event_type: str = "REACTION_ADD",
    user_id: int = USER_ID,
    guild_id: int | None = GUILD_ID,
    emoji_id: int | None = 1,
    member=None,
):
    return SimpleNamespace(
        event_type=event_type,
        user_id=user_id,
        message_id=message_id,
        channel_id=CHANNEL_ID,
        guild_id=guild_id,
        emoji=SimpleNamespace(id=emoji_id, name=emoji_name),
        member=member,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def guild_emoji():
    """Every emoji the default category table needs, keyed by name."""
    return {name: make_emoji(name) for name in required_emoji(DEFAULT_CATEGORIES)}


@pytest.fixture
def guild_roles():
    return [
        make_role("@everyone"),
        make_role("Leviathan Wakes"),
        make_role("Caliban's War"),
        make_role("Season 1"),
        make_role("Current Show"),
    ]


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def member():
    return make_member()


@pytest.fixture
def guild(guild_emoji, guild_roles, channel, member):
    fake = SimpleNamespace(
        id=GUILD_ID,
        emojis=list(guild_emoji.values()),
        roles=guild_roles,
        fetch_member=AsyncMock(return_value=member),
    )
    fake.get_channel = lambda channel_id: channel if channel_id == channel.id else None
    return fake


@pytest.fixture
def user():
    return SimpleNamespace(id=USER_ID, bot=False, send=AsyncMock())


@pytest.fixture
def client(guild, user):
    fake = MagicMock()
    fake.is_ready.return_value = True
    fake.user = SimpleNamespace(id=BOT_USER_ID)
    fake.get_guild = lambda guild_id: guild if guild_id == guild.id else None
    fake.get_user = MagicMock(return_value=user)
    fake.fetch_user = AsyncMock(return_value=user)
    return fake


@pytest.fixture
def app_config():
    return AppConfig(discord=DiscordConfig(guild_channels={GUILD_ID: CHANNEL_ID}))
