"""
Discord client wiring for the role bot.

Uses the raw reaction events so reactions on uncached messages, and from
uncached users, still arrive.
"""

import logging

import discord

from config import AppConfig, ConfigurationError
from coordinator import PLATFORM_ERRORS, ReactionCoordinator
from rate_limiter import KeyedTokenBucketRateLimiter

logger = logging.getLogger(__name__)


def default_intents() -> discord.Intents:
    """Guilds, emoji, guild messages and guild reactions; no privileged intents."""
    intents = discord.Intents.none()
    intents.guilds = True
    intents.emojis_and_stickers = True
    intents.guild_messages = True
    intents.guild_reactions = True
    return intents


class RoleBot(discord.Client):
    """discord.Client that forwards reaction events to a ReactionCoordinator."""

    def __init__(
        self,
        config: AppConfig,
        limiter: KeyedTokenBucketRateLimiter | None = None,
        intents: discord.Intents | None = None,
        **options,
    ):
        super().__init__(intents=intents or default_intents(), **options)
        self.config = config
        self.coordinator = ReactionCoordinator(self, config, limiter=limiter)
        self.startup_error: Exception | None = None

    async def on_ready(self) -> None:
        logger.info(f"Logged in as {self.user} ({len(self.guilds)} guilds)")
        # on_ready fires again after reconnects
        if self.coordinator.initialized:
            logger.info("Reconnected; role messages already set up")
            return

        try:
            await self.coordinator.initialize()
        except (ConfigurationError, *PLATFORM_ERRORS) as e:
            logger.critical(f"Initialization failed: {e}")
            self.startup_error = e
            await self.close()
            return

        limiter = self.coordinator.limiter
        logger.info(f"Rate limit: {limiter.capacity:g} role changes burst, "
                    f"refilling every {limiter.interval:g}s")

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        await self.coordinator.handle_reaction_event(payload)

    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        await self.coordinator.handle_reaction_event(payload)

    async def close(self) -> None:
        await self.coordinator.close()
        await super().close()
