from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from trello_discord_notifier.config.settings import Settings
from trello_discord_notifier.config.validate import (
    ConfigValidationError,
    ConfigValidationIssue,
    issues_from_pydantic_error,
    validate_settings,
)

DEFAULT_CONFIG_PATH = Path("config/config.yaml")
DOTENV_PATH = Path(".env")

# Required setting -> flat environment variable that supplies it.
_REQUIRED: dict[str, str] = {
    "trello.board_url": "TRELLO_JSON_URL",
    "discord.webhook_url": "DISCORD_WEBHOOK_URL",
}


def _config_file(config_path: str | Path | None) -> Path | None:
    """
    Pick the YAML file to read. An argument or CONFIG_PATH must exist; the default
    `config/config.yaml` is optional.
    """
    explicit = config_path if config_path is not None else os.environ.get("CONFIG_PATH")
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise ConfigValidationError(
                [ConfigValidationIssue(path="CONFIG_PATH", message=f"Config file not found: {path}")]
            )
        return path
    return DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(path), message=f"Unable to read config file: {exc}")]
        ) from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            [ConfigValidationIssue(path=str(path), message="YAML root must be a mapping/object")]
        )
    return raw


def _explain_missing(issues: list[ConfigValidationIssue]) -> list[ConfigValidationIssue]:
    """Name the required key (not just its section) and the env var that sets it."""
    explained: list[ConfigValidationIssue] = []
    for issue in issues:
        path = issue.path
        if "Field required" in issue.message and path not in _REQUIRED:
            path = next((key for key in _REQUIRED if key.split(".")[0] == path), path)
        env_name = _REQUIRED.get(path)
        if env_name is None:
            explained.append(issue)
            continue
        explained.append(
            ConfigValidationIssue(
                path, f"{issue.message} Set `{env_name}` (or YAML `{path}`)."
            )
        )
    return explained


def load_settings(*, config_path: str | Path | None = None) -> Settings:
    """
    Build settings from `.env` (into the process environment, never overriding it),
    then the YAML file, then environment variables, and run the extra checks.
    """
    if DOTENV_PATH.is_file():
        load_dotenv(dotenv_path=DOTENV_PATH, override=False)

    path = _config_file(config_path)
    yaml_data = _read_yaml(path) if path is not None else {}

    try:
        settings = Settings(**yaml_data)
    except ValidationError as exc:
        raise ConfigValidationError(_explain_missing(issues_from_pydantic_error(exc))) from exc

    validate_settings(settings)
    return settings
