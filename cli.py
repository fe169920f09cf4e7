"""
CLI entry point for the Expanse role bot.

Default mode connects to Discord and runs until interrupted; --check only
validates config.toml and prints what would be tracked.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import discord
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bot import RoleBot
from config import AppConfig, ConfigurationError, load_config, load_token
from logging_utils import setup_logging
from roles import required_emoji

logger: logging.Logger | None = None
console = Console()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='expanse-roles',
        description='Reaction-based role assignment bot for Discord',
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=Path('config.toml'),
        help='Path to config.toml (default: ./config.toml)',
    )
    parser.add_argument(
        '--check',
        action='store_true',
        help='Validate configuration, print a summary, and exit without connecting',
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Only show warnings and errors on the console',
    )
    return parser.parse_args(argv)


def config_summary(config: AppConfig) -> Table:
    """Rich table of tracked guilds, categories and limiter settings."""
    table = Table(title="Role assignment configuration", show_lines=False)
    table.add_column("Setting", style="bold cyan")
    table.add_column("Value", style="white")

    for guild_id, channel_id in config.discord.guild_channels.items():
        table.add_row("Guild", f"{guild_id} -> channel {channel_id}")
    for category in config.categories:
        table.add_row("Category", f"{category.title} ({len(category.emoji)} emoji)")
    table.add_row("Intro", config.intro.title)
    table.add_row("Emoji required", str(len(required_emoji(config.categories))))

    rate = config.rate_limiting
    table.add_row(
        "Rate limit",
        f"{rate.capacity:g} burst, {rate.tokens_per_interval:g} per {rate.interval_seconds:g}s, "
        f"{rate.cost_per_role_change:g} per change",
    )
    return table


async def run(config: AppConfig, token: str) -> int:
    """Run the bot until it is closed. Returns a process exit code."""
    bot = RoleBot(config)
    async with bot:
        await bot.start(token)

    if bot.startup_error is not None:
        console.print(f"\n[red]Startup failed:[/] {bot.startup_error}")
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    global logger
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        console.print(f"\n[red]Configuration error:[/] {e}")
        sys.exit(1)

    if args.check:
        console.print(config_summary(config))
        return

    logger = setup_logging(
        log_name=config.logging.log_name,
        verbose_console_logging=config.logging.verbose_console_logging and not args.quiet,
        log_dir=config.project_root / 'logs',
    )

    try:
        token = load_token(config.project_root)
    except ConfigurationError as e:
        console.print(f"\n[red]Configuration error:[/] {e}")
        sys.exit(1)

    console.print(Panel(
        f"[bold]Expanse Role Bot[/bold]\n\n"
        f"  Guilds:     [cyan]{len(config.discord.guild_channels)}[/]\n"
        f"  Categories: [cyan]{len(config.categories)}[/]\n"
        f"  Burst:      [cyan]{config.rate_limiting.capacity:g}[/] role changes",
        border_style="blue",
    ))
    logger.info(f"Starting with config {args.config}")

    try:
        exit_code = asyncio.run(run(config, token))
    except discord.LoginFailure as e:
        console.print(f"\n[red]Login failed:[/] {e}")
        exit_code = 1
    except KeyboardInterrupt:
        console.print("Exiting.")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == '__main__':
    main()
