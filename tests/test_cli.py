"""Tests for argument parsing and the --check mode."""

from pathlib import Path

import pytest

import cli
from config import AppConfig, DiscordConfig


def test_parse_args_defaults():
    args = cli.parse_args([])
    assert args.config == Path("config.toml")
    assert args.check is False
    assert args.quiet is False


def test_config_summary_lists_guilds_and_categories():
    config = AppConfig(discord=DiscordConfig(guild_channels={1: 2, 3: 4}))
    table = cli.config_summary(config)
    # 2 guilds + 4 categories + intro + emoji count + rate limit
    assert table.row_count == 9


def test_check_mode_does_not_connect(tmp_path, monkeypatch):
    config_path = tmp_path / "config.toml"
    config_path.write_text('[discord.guild_channels]\n"1" = 2\n')

    def fail(*args, **kwargs):
        raise AssertionError("bot should not start in --check mode")

    monkeypatch.setattr(cli, "run", fail)
    cli.main(["--config", str(config_path), "--check"])


def test_missing_config_exits(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path / "missing.toml")])
    assert excinfo.value.code == 1
