from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trello_discord_notifier.config.env_aliases import get_flat_env_settings_source


class _BaseSection(BaseModel):
    model_config = {"extra": "forbid"}


class TrelloSettings(_BaseSection):
    # Full board export URL, e.g. https://trello.com/b/<id>.json?key=...&token=...
    board_url: SecretStr
    timeout_seconds: float = Field(default=10.0, gt=0)
    verify_tls: bool = True
    max_retries: int = Field(default=3, ge=0, le=10)


class DiscordSettings(_BaseSection):
    # The webhook URL embeds the webhook token.
    webhook_url: SecretStr
    username: str | None = None
    timeout_seconds: float = Field(default=10.0, gt=0)
    verify_tls: bool = True
    # Pause between consecutive messages to stay under webhook rate limits.
    delay_seconds: float = Field(default=1.0, ge=0)


class StateSettings(_BaseSection):
    path: Path = Path("board_state.json")
    atomic_write: bool = True
    fsync: bool = True

    @field_validator("path")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()


class ObservabilitySettings(_BaseSection):
    log_level: str = "INFO"
    log_format: str | None = None  # json|human (overrides LOG_FORMAT/env when set)
    json_logs: bool = False
    # When set, run metrics are written here in Prometheus text format after each run.
    metrics_textfile: Path | None = None

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized in {"json", "human"}:
            return normalized
        raise ValueError("observability.log_format must be 'json' or 'human'")


class TransportHardeningSettings(_BaseSection):
    # If true, allow httpx to read HTTP_PROXY/HTTPS_PROXY/NO_PROXY and other env settings.
    trust_env: bool = False
    # Allow plaintext HTTP for upstream URLs (Trello / Discord). Strongly discouraged.
    allow_insecure_http: bool = False
    # Allow disabling TLS verification for upstream requests. Strongly discouraged.
    allow_insecure_tls: bool = False
    # Allow outbound upstreams that target loopback / link-local addresses.
    allow_local_upstreams: bool = False


class HardeningSettings(_BaseSection):
    transport: TransportHardeningSettings = Field(default_factory=TransportHardeningSettings)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        extra="forbid",
    )

    trello: TrelloSettings
    discord: DiscordSettings
    state: StateSettings = Field(default_factory=StateSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    hardening: HardeningSettings = Field(default_factory=HardeningSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """
        Construct Settings from a mapping without reading environment variables.

        Useful in tests where we want to pass nested dicts and keep mypy happy.
        """
        class _InitOnlySettings(Settings):
            @classmethod
            def settings_customise_sources(
                cls,
                settings_cls,
                init_settings,
                env_settings,
                dotenv_settings,
                file_secret_settings,
            ):
                return (init_settings,)

        return _InitOnlySettings(**dict(data))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # `.env` is loaded into os.environ by load_settings(), so it flows through the env sources.
        return (
            env_settings,
            get_flat_env_settings_source,
            init_settings,
            file_secret_settings,
        )
