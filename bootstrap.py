"""
Idempotent setup of the role assignment messages in a channel.

Looks for each category embed in recent channel history by title, sends it if
it is missing, then adds whichever emoji reactions the message does not carry
yet. Running it against a channel that is already set up sends nothing and
adds nothing.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence

import discord

from roles import IntroMessage, RoleCategory

logger = logging.getLogger(__name__)


async def fetch_recent_messages(channel: discord.TextChannel, limit: int = 20) -> list[discord.Message]:
    """Most recent `limit` messages in `channel`, newest first."""
    return [message async for message in channel.history(limit=limit)]


def find_embed_message(messages: Sequence[discord.Message], title: str) -> discord.Message | None:
    """First message carrying an embed titled `title`, or None."""
    for message in messages:
        if any(embed.title == title for embed in message.embeds):
            return message
    return None


async def ensure_embed(
    channel: discord.TextChannel,
    messages: Sequence[discord.Message],
    title: str,
    color: int,
    thumbnail: str | None = None,
    description: str | None = None,
) -> discord.Message:
    """Return the existing message with this embed title, sending one if absent."""
    existing = find_embed_message(messages, title)
    if existing is not None:
        logger.debug(f"Found existing embed '{title}' as message {existing.id}")
        return existing

    embed = discord.Embed(title=title, color=color, description=description)
    if thumbnail is not None:
        embed.set_thumbnail(url=thumbnail)

    message = await channel.send(embed=embed)
    logger.info(f"Sent embed '{title}' to channel {channel.id} as message {message.id}")
    return message


def _reaction_key(emoji) -> int | str:
    # custom emoji compare by id, unicode emoji by text
    emoji_id = getattr(emoji, 'id', None)
    return emoji_id if emoji_id is not None else str(emoji)


async def react_with(message: discord.Message, emoji: Sequence[discord.Emoji]) -> int:
    """Add each emoji reaction missing from `message`. Returns how many were added."""
    present = {_reaction_key(reaction.emoji) for reaction in message.reactions}
    missing = [e for e in emoji if _reaction_key(e) not in present]
    if missing:
        await asyncio.gather(*(message.add_reaction(e) for e in missing))
        logger.info(f"Added {len(missing)} reactions to message {message.id}")
    return len(missing)


async def ensure_category_message(
    channel: discord.TextChannel,
    messages: Sequence[discord.Message],
    category: RoleCategory,
    emoji_lookup: Mapping[str, discord.Emoji],
    color: int,
) -> discord.Message:
    message = await ensure_embed(channel, messages, category.title, color, thumbnail=category.thumbnail)
    await react_with(message, [emoji_lookup[name] for name in category.emoji])
    return message


async def ensure_intro_message(
    channel: discord.TextChannel,
    messages: Sequence[discord.Message],
    intro: IntroMessage,
    color: int,
) -> discord.Message:
    return await ensure_embed(channel, messages, intro.title, color, description=intro.description)


async def bootstrap_channel(
    channel: discord.TextChannel,
    categories: Sequence[RoleCategory],
    intro: IntroMessage,
    emoji_lookup: Mapping[str, discord.Emoji],
    color: int,
    history_limit: int = 20,
) -> list[discord.Message]:
    """Make sure every category embed and the intro exist in `channel`.

    History is fetched once and shared by all the ensure steps, which run
    concurrently.

    Returns:
        The tracked messages: one per category in table order, then the intro.
    """
    messages = await fetch_recent_messages(channel, history_limit)
    logger.info(f"Bootstrapping channel {channel.id} ({len(messages)} recent messages)")

    return list(await asyncio.gather(
        *(ensure_category_message(channel, messages, category, emoji_lookup, color) for category in categories),
        ensure_intro_message(channel, messages, intro, color),
    ))
