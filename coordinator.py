"""
Turns reaction add/remove events into role changes.

Every incoming event walks the same short path and stops at the first step
that says no:

    ignore filter -> tracked message? -> bot? -> rate limit -> role lookup -> add/remove role

Platform failures along the way are logged and the event is dropped. Nothing
raised while handling one event reaches the caller, so one bad event never
affects another.
"""

import asyncio
import logging
import math
from collections.abc import Mapping
from types import MappingProxyType

import aiohttp
import discord

from bootstrap import bootstrap_channel
from config import AppConfig, ConfigurationError
from rate_limiter import KeyedTokenBucketRateLimiter
from registry import GuildRegistry, build_emoji_lookup
from roles import find_role_for_emoji, required_emoji

logger = logging.getLogger(__name__)

# Failures that drop a single event instead of propagating
PLATFORM_ERRORS = (discord.DiscordException, aiohttp.ClientError, asyncio.TimeoutError)

# event type -> whether the user should end up with the role
EVENT_DIRECTIONS = {
    'REACTION_ADD': True,
    'REACTION_REMOVE': False,
}


class ReactionCoordinator:
    """Owns the guild registries and the per-user limiter.

    Usage::

        coordinator = ReactionCoordinator(client, config)
        await coordinator.initialize()          # once, after the client is ready
        await coordinator.handle_reaction_event(payload)
    """

    def __init__(
        self,
        client: discord.Client,
        config: AppConfig,
        limiter: KeyedTokenBucketRateLimiter | None = None,
    ):
        self._client = client
        self._config = config
        rate = config.rate_limiting
        self._limiter = limiter or KeyedTokenBucketRateLimiter(
            interval=rate.interval_seconds,
            tokens_per_interval=rate.tokens_per_interval,
            capacity=rate.capacity,
        )
        self._cost = rate.cost_per_role_change
        self._registries: dict[int, GuildRegistry] = {}
        self._background_tasks: set[asyncio.Task] = set()
        self._initialized = False

    @property
    def limiter(self) -> KeyedTokenBucketRateLimiter:
        return self._limiter

    @property
    def registries(self) -> Mapping[int, GuildRegistry]:
        return MappingProxyType(self._registries)

    @property
    def initialized(self) -> bool:
        return self._initialized

    # -----------------------------------------------
    # Initialization
    # -----------------------------------------------

    async def initialize(self) -> None:
        """Bootstrap every configured guild the client can see. Runs once.

        A failed run leaves the coordinator uninitialized with no registries,
        so a later call starts over.

        Raises:
            ConfigurationError: a guild is missing required emoji or its
                configured channel. Treat as fatal.
            discord.DiscordException, aiohttp.ClientError, asyncio.TimeoutError:
                the platform failed while sending embeds or reactions.
        """
        if self._initialized:
            logger.debug("Already initialized, skipping")
            return
        self._initialized = True

        setups = []
        for guild_id, channel_id in self._config.discord.guild_channels.items():
            guild = self._client.get_guild(guild_id)
            if guild is None:
                logger.warning(f"Configured guild {guild_id} not visible to this bot, skipping")
                continue
            setups.append(self._initialize_guild(guild, channel_id))

        try:
            await asyncio.gather(*setups)
        except (ConfigurationError, *PLATFORM_ERRORS):
            self._initialized = False
            self._registries.clear()
            raise
        logger.info(f"Role assignment ready in {len(self._registries)} guild(s)")

    async def _initialize_guild(self, guild: discord.Guild, channel_id: int) -> None:
        emoji_lookup = build_emoji_lookup(guild, required_emoji(self._config.categories))

        channel = guild.get_channel(channel_id)
        if channel is None:
            raise ConfigurationError(f"Channel {channel_id} not found in guild {guild.id}")

        messages = await bootstrap_channel(
            channel,
            self._config.categories,
            self._config.intro,
            emoji_lookup,
            color=self._config.discord.embed_color,
            history_limit=self._config.discord.history_limit,
        )
        self._registries[guild.id] = GuildRegistry(
            guild_id=guild.id,
            message_ids=frozenset(message.id for message in messages),
        )
        logger.info(f"Guild {guild.id}: tracking {len(messages)} messages in channel {channel_id}")

    # -----------------------------------------------
    # Event handling
    # -----------------------------------------------

    async def handle_reaction_event(self, payload: discord.RawReactionActionEvent) -> None:
        """Grant or revoke the role behind one raw reaction event."""
        if not self._client.is_ready():
            return

        should_have_role = EVENT_DIRECTIONS.get(payload.event_type)
        if should_have_role is None:
            logger.debug(f"Ignoring event type {payload.event_type!r}")
            return

        emoji = payload.emoji
        if emoji is None or (emoji.id is None and not emoji.name):
            logger.debug(f"Ignoring reaction without emoji id or name on message {payload.message_id}")
            return

        me = self._client.user
        if me is not None and payload.user_id == me.id:
            return

        registry = self._registries.get(payload.guild_id) if payload.guild_id is not None else None
        if registry is None or not registry.is_role_message(payload.message_id):
            return

        try:
            if await self._is_bot(payload):
                return
            if not self._check_rate_limit_or_warn(payload.user_id):
                return
            await self._set_role(payload, should_have_role)
        except PLATFORM_ERRORS as e:
            logger.error(f"Failed to update role for user {payload.user_id} "
                         f"on message {payload.message_id}: {e}")

    async def _is_bot(self, payload: discord.RawReactionActionEvent) -> bool:
        # member is only populated for guild reaction adds
        if payload.member is not None:
            return payload.member.bot
        user = self._client.get_user(payload.user_id)
        if user is None:
            user = await self._client.fetch_user(payload.user_id)
        return user.bot

    def _check_rate_limit_or_warn(self, user_id: int) -> bool:
        """Spend a token for this user, or start a DM telling them to wait.

        The DM runs as a background task; the event path never waits on it.
        """
        if self._limiter.try_remove_tokens(user_id, self._cost):
            return True

        logger.info(f"User {user_id} is changing roles too quickly")
        task = asyncio.create_task(self._warn_rate_limited(user_id))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return False

    async def _warn_rate_limited(self, user_id: int) -> None:
        wait = math.ceil(self._limiter.wait_seconds(user_id, self._cost))
        text = f"Roles being changed too quickly, please wait {wait} seconds before setting more roles"
        try:
            user = self._client.get_user(user_id)
            if user is None:
                user = await self._client.fetch_user(user_id)
            await user.send(text)
        except PLATFORM_ERRORS as e:
            logger.warning(f"Could not send rate limit message to user {user_id}: {e}")

    async def _set_role(self, payload: discord.RawReactionActionEvent, should_have_role: bool) -> None:
        guild = self._client.get_guild(payload.guild_id)
        if guild is None:
            logger.warning(f"Guild {payload.guild_id} is no longer available")
            return

        role = find_role_for_emoji(guild.roles, payload.emoji.name)
        if role is None:
            logger.info(f"No role matches emoji {payload.emoji.name!r} in guild {guild.id}")
            return

        # always fetch; the member cache may be stale
        member = await guild.fetch_member(payload.user_id)
        if should_have_role:
            logger.info(f"Adding role {role.name} to member {member.display_name}")
            await member.add_roles(role, reason="Role assignment reaction added")
        else:
            logger.info(f"Removing role {role.name} from member {member.display_name}")
            await member.remove_roles(role, reason="Role assignment reaction removed")

    async def close(self) -> None:
        """Wait for any rate limit DMs still in flight."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
