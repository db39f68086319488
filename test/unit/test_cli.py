from __future__ import annotations

import argparse
import json

import pytest

from test.support.settings_factory import make_settings
from trello_discord_notifier import cli
from trello_discord_notifier.adapters.trello.errors import NotFoundError
from trello_discord_notifier.app.jobs.poll_board import PollResult
from trello_discord_notifier.config.validate import ConfigValidationError, ConfigValidationIssue


def _args(**kwargs) -> argparse.Namespace:
    kwargs.setdefault("config", None)
    return argparse.Namespace(**kwargs)


def _missing_webhook(**_kwargs):
    raise ConfigValidationError(
        [ConfigValidationIssue("discord.webhook_url", "Field required. Set `DISCORD_WEBHOOK_URL`.")]
    )


def test_cmd_run_success(monkeypatch, tmp_path) -> None:
    settings = make_settings(str(tmp_path / "state.json"))
    calls = []

    async def _stub_poll(received):
        calls.append(received)
        return PollResult(events=0, delivered=0, failed=0, render_failed=0, state_saved=True)

    monkeypatch.setattr(cli, "load_settings", lambda **_kwargs: settings)
    monkeypatch.setattr(cli, "poll_board", _stub_poll)

    assert cli.cmd_run(_args()) == 0
    assert calls == [settings]


def test_cmd_run_delivery_failures_still_exit_zero(monkeypatch, tmp_path) -> None:
    settings = make_settings(str(tmp_path / "state.json"))

    async def _stub_poll(_settings):
        return PollResult(events=2, delivered=0, failed=2, render_failed=0, state_saved=True)

    monkeypatch.setattr(cli, "load_settings", lambda **_kwargs: settings)
    monkeypatch.setattr(cli, "poll_board", _stub_poll)

    assert cli.cmd_run(_args()) == 0


def test_cmd_run_fetch_failure_exits_one(monkeypatch, tmp_path) -> None:
    settings = make_settings(str(tmp_path / "state.json"))

    async def _stub_poll(_settings):
        raise NotFoundError("Trello board not found (status=404) at /b/abc123.json")

    monkeypatch.setattr(cli, "load_settings", lambda **_kwargs: settings)
    monkeypatch.setattr(cli, "poll_board", _stub_poll)

    assert cli.cmd_run(_args()) == 1


def test_cmd_run_config_error_exits_one_before_polling(monkeypatch, capsys) -> None:
    async def _unexpected(_settings):
        raise AssertionError("poll_board must not run without configuration")

    monkeypatch.setattr(cli, "load_settings", _missing_webhook)
    monkeypatch.setattr(cli, "poll_board", _unexpected)

    assert cli.cmd_run(_args()) == 1
    assert "DISCORD_WEBHOOK_URL" in capsys.readouterr().err


def test_cmd_run_writes_metrics_textfile(monkeypatch, tmp_path) -> None:
    metrics_path = tmp_path / "metrics" / "notifier.prom"
    settings = make_settings(
        str(tmp_path / "state.json"),
        overrides={"observability": {"metrics_textfile": str(metrics_path)}},
    )

    async def _stub_poll(_settings):
        raise NotFoundError("gone")

    monkeypatch.setattr(cli, "load_settings", lambda **_kwargs: settings)
    monkeypatch.setattr(cli, "poll_board", _stub_poll)

    assert cli.cmd_run(_args()) == 1
    assert "notifications_sent_total" in metrics_path.read_text(encoding="utf-8")


def test_cmd_validate_config(monkeypatch, capsys, tmp_path) -> None:
    settings = make_settings(str(tmp_path / "state.json"))
    monkeypatch.setattr(cli, "load_settings", lambda **_kwargs: settings)

    assert cli.cmd_validate_config(_args()) == 0
    out = capsys.readouterr().out
    assert "Configuration is valid" in out
    assert "fake-token" not in out


def test_cmd_validate_config_invalid(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "load_settings", _missing_webhook)

    assert cli.cmd_validate_config(_args()) == 1
    assert "discord.webhook_url" in capsys.readouterr().err


def test_cmd_dump_config_redacts_secrets(monkeypatch, capsys, tmp_path) -> None:
    settings = make_settings(str(tmp_path / "state.json"))
    monkeypatch.setattr(cli, "load_settings", lambda **_kwargs: settings)

    assert cli.cmd_dump_config(_args()) == 0
    out = capsys.readouterr().out
    parsed = json.loads(out)
    assert parsed["discord"]["webhook_url"] == "[redacted]"
    assert parsed["trello"]["board_url"] == "[redacted]"
    assert parsed["discord"]["delay_seconds"] == 0.0
    assert "fake-token" not in out


def test_cmd_show_deprecated(monkeypatch, capsys) -> None:
    monkeypatch.setenv("DISCORD_WEBHOOK", "https://discord.example/api/webhooks/1/t")
    monkeypatch.delenv("DISCORD_WEBHOOK_URL", raising=False)

    assert cli.cmd_show_deprecated(_args()) == 0
    out = capsys.readouterr().out
    assert "DISCORD_WEBHOOK → DISCORD_WEBHOOK_URL" in out
    assert "NEEDS MIGRATION" in out


def test_cmd_show_deprecated_none(monkeypatch, capsys) -> None:
    for name in ("TRELLO_URL", "DISCORD_WEBHOOK", "STATE_PATH"):
        monkeypatch.delenv(name, raising=False)

    assert cli.cmd_show_deprecated(_args()) == 0
    assert "No deprecated environment variables" in capsys.readouterr().out


def test_main_without_command_prints_help(capsys) -> None:
    assert cli.main([]) == 0
    assert "trello-discord-notifier" in capsys.readouterr().out


def test_main_dispatches_subcommand(monkeypatch) -> None:
    seen = []
    monkeypatch.setattr(cli, "cmd_validate_config", lambda args: seen.append(args.config) or 0)
    assert cli.main(["--config", "custom.yaml", "validate-config"]) == 0
    assert seen == ["custom.yaml"]

    with pytest.raises(SystemExit):
        cli.main(["no-such-command"])
