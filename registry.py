"""
Per-guild lookup tables built once at startup.

A GuildRegistry tells the reaction handler whether a message is one of our
role assignment messages. The emoji lookup is only needed while bootstrapping
and is not kept. Nothing mutates a registry after initialization.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import discord

from config import ConfigurationError

logger = logging.getLogger(__name__)


class MissingEmojiError(ConfigurationError):
    """A guild lacks custom emoji that the category table needs."""

    def __init__(self, guild_id: int, missing: list[str]):
        self.guild_id = guild_id
        self.missing = missing
        super().__init__(f"Guild {guild_id} is missing emoji: {', '.join(missing)}")


@dataclass(frozen=True)
class GuildRegistry:
    guild_id: int
    message_ids: frozenset[int] = frozenset()

    def is_role_message(self, message_id: int) -> bool:
        return message_id in self.message_ids


def build_emoji_lookup(guild: discord.Guild, required: Iterable[str]) -> dict[str, discord.Emoji]:
    """Map emoji name -> guild emoji, failing if any required name is absent.

    Raises:
        MissingEmojiError: listing every missing name. This is a deployment
            problem, not something to recover from at runtime.
    """
    lookup: dict[str, discord.Emoji] = {}
    for emoji in guild.emojis:
        lookup[emoji.name] = emoji

    missing = [name for name in required if name not in lookup]
    if missing:
        raise MissingEmojiError(guild.id, missing)

    logger.info(f"Guild {guild.id}: found {len(lookup)} emoji")
    return lookup
