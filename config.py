"""
Configuration loading and validation for the Expanse role bot.

Single source of truth — all modules import config from here.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from roles import DEFAULT_CATEGORIES, DEFAULT_INTRO, IntroMessage, RoleCategory


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""


@dataclass(frozen=True)
class DiscordConfig:
    history_limit: int = 20
    embed_color: int = 0x2E86C1
    # guild id -> id of the channel holding that guild's role assignment messages
    guild_channels: dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RateLimitConfig:
    interval_seconds: float = 1.0
    tokens_per_interval: float = 1.0
    capacity: float = 30.0
    cost_per_role_change: float = 1.0


@dataclass(frozen=True)
class LoggingConfig:
    verbose_console_logging: bool = True
    log_name: str = "role_bot"


@dataclass(frozen=True)
class AppConfig:
    discord: DiscordConfig = DiscordConfig()
    rate_limiting: RateLimitConfig = RateLimitConfig()
    logging: LoggingConfig = LoggingConfig()
    categories: tuple[RoleCategory, ...] = DEFAULT_CATEGORIES
    intro: IntroMessage = DEFAULT_INTRO
    project_root: Path = Path(".")


def print_setup_hint() -> None:
    """Print a helpful message about creating the config files."""
    print("\n" + "=" * 60)
    print("  CONFIGURATION REQUIRED")
    print("=" * 60)
    print("\n  Create config.toml with a [discord.guild_channels] table")
    print("  mapping each guild id to its role assignment channel id,")
    print("  and put DISCORD_TOKEN=... in a .env file beside it.")
    print("=" * 60 + "\n")


def _parse_guild_channels(raw: dict) -> dict[int, int]:
    mapping: dict[int, int] = {}
    for guild_id, channel_id in raw.items():
        try:
            mapping[int(guild_id)] = int(channel_id)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Invalid guild_channels entry {guild_id!r} = {channel_id!r}; both must be integer ids."
            ) from None
    return mapping


def _parse_categories(raw: list[dict]) -> tuple[RoleCategory, ...]:
    categories = []
    for entry in raw:
        if "title" not in entry or not entry.get("emoji"):
            raise ConfigurationError(f"Category entries need a title and a non-empty emoji list: {entry!r}")
        categories.append(RoleCategory(
            title=entry["title"],
            emoji=tuple(entry["emoji"]),
            thumbnail=entry.get("thumbnail"),
        ))
    return tuple(categories)


def load_config(config_path: str | Path = "config.toml") -> AppConfig:
    """Load configuration from TOML file and return an AppConfig instance.

    Applies defaults for any missing sections/keys so older config files
    still work after new settings are added.
    """
    config_file = Path(config_path)
    if not config_file.exists():
        print_setup_hint()
        raise ConfigurationError(f"Configuration file '{config_path}' not found.")

    try:
        with open(config_file, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Could not parse {config_path}: {e}") from e

    project_root = config_file.resolve().parent

    discord_raw = dict(raw.get("discord", {}))
    guild_channels = _parse_guild_channels(discord_raw.pop("guild_channels", {}))
    try:
        discord_cfg = DiscordConfig(**discord_raw, guild_channels=guild_channels)
        rate_limiting = RateLimitConfig(**raw.get("rate_limiting", {}))
        logging_cfg = LoggingConfig(**raw.get("logging", {}))
    except TypeError as e:
        raise ConfigurationError(f"Unknown setting in {config_path}: {e}") from e

    if not guild_channels:
        print_setup_hint()
        raise ConfigurationError("No guilds configured under [discord.guild_channels].")

    if rate_limiting.cost_per_role_change > rate_limiting.capacity:
        raise ConfigurationError(
            "rate_limiting.cost_per_role_change cannot exceed rate_limiting.capacity."
        )

    categories = DEFAULT_CATEGORIES
    if "categories" in raw:
        categories = _parse_categories(raw["categories"])

    intro = DEFAULT_INTRO
    if "intro" in raw:
        intro = IntroMessage(
            title=raw["intro"].get("title", DEFAULT_INTRO.title),
            description=raw["intro"].get("description", DEFAULT_INTRO.description),
        )

    return AppConfig(
        discord=discord_cfg,
        rate_limiting=rate_limiting,
        logging=logging_cfg,
        categories=categories,
        intro=intro,
        project_root=project_root,
    )


def load_token(project_root: Path = Path(".")) -> str:
    """Read DISCORD_TOKEN from the .env beside config.toml, or the environment."""
    load_dotenv(dotenv_path=project_root / ".env")
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token or token == "your_bot_token":
        print_setup_hint()
        raise ConfigurationError("DISCORD_TOKEN not configured in .env file or environment.")
    return token
