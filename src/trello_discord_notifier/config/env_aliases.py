"""Flat environment variable names and deprecated aliases.

`TRELLO_JSON_URL`-style flat names map onto the nested settings sections. Legacy
names still work but emit a DeprecationWarning.
"""
from __future__ import annotations

import os
import warnings
from collections.abc import Iterable, Mapping
from typing import Any

# Mapping of deprecated env vars to their canonical names
_DEPRECATED_ALIASES: dict[str, str] = {
    "TRELLO_URL": "TRELLO_JSON_URL",
    "DISCORD_WEBHOOK": "DISCORD_WEBHOOK_URL",
    "STATE_PATH": "STATE_FILE",
}


def _warn_deprecated_env_var(old_name: str, new_name: str) -> None:
    warnings.warn(
        f"Environment variable '{old_name}' is deprecated. Use '{new_name}' instead. "
        f"Support for '{old_name}' will be removed in a future version.",
        DeprecationWarning,
        stacklevel=3,
    )


def _set_nested(data: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    node = data
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[path[-1]] = value


def _apply_alias_mappings(
    env: Mapping[str, str],
    data: dict[str, Any],
    mappings: Iterable[tuple[str, tuple[str, ...]]],
) -> None:
    for env_name, path in mappings:
        value = env.get(env_name)
        if value:
            _set_nested(data, path, value)


def _apply_deprecated_aliases(
    env: Mapping[str, str],
    data: dict[str, Any],
    deprecated_mappings: Iterable[tuple[str, str, tuple[str, ...]]],
) -> None:
    for old_name, new_name, path in deprecated_mappings:
        old_value = env.get(old_name)
        if not old_value:
            continue
        if env.get(new_name):
            continue
        _warn_deprecated_env_var(old_name, new_name)
        _set_nested(data, path, old_value)


_CANONICAL_MAPPINGS: tuple[tuple[str, tuple[str, ...]], ...] = (
    # Trello
    ("TRELLO_JSON_URL", ("trello", "board_url")),
    ("TRELLO_TIMEOUT_SECONDS", ("trello", "timeout_seconds")),
    ("TRELLO_VERIFY_TLS", ("trello", "verify_tls")),
    ("TRELLO_MAX_RETRIES", ("trello", "max_retries")),
    # Discord
    ("DISCORD_WEBHOOK_URL", ("discord", "webhook_url")),
    ("DISCORD_USERNAME", ("discord", "username")),
    ("DISCORD_TIMEOUT_SECONDS", ("discord", "timeout_seconds")),
    ("DISCORD_VERIFY_TLS", ("discord", "verify_tls")),
    ("DISCORD_DELAY_SECONDS", ("discord", "delay_seconds")),
    # State
    ("STATE_FILE", ("state", "path")),
    ("STATE_ATOMIC_WRITE", ("state", "atomic_write")),
    ("STATE_FSYNC", ("state", "fsync")),
    # Observability
    ("LOG_LEVEL", ("observability", "log_level")),
    ("LOG_FORMAT", ("observability", "log_format")),
    ("LOG_JSON", ("observability", "json_logs")),
    ("METRICS_TEXTFILE", ("observability", "metrics_textfile")),
    # Hardening
    ("HARDENING_TRANSPORT_TRUST_ENV", ("hardening", "transport", "trust_env")),
    (
        "HARDENING_TRANSPORT_ALLOW_INSECURE_HTTP",
        ("hardening", "transport", "allow_insecure_http"),
    ),
    (
        "HARDENING_TRANSPORT_ALLOW_INSECURE_TLS",
        ("hardening", "transport", "allow_insecure_tls"),
    ),
    (
        "HARDENING_TRANSPORT_ALLOW_LOCAL_UPSTREAMS",
        ("hardening", "transport", "allow_local_upstreams"),
    ),
)

_DEPRECATED_VALUE_MAPPINGS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("TRELLO_URL", "TRELLO_JSON_URL", ("trello", "board_url")),
    ("DISCORD_WEBHOOK", "DISCORD_WEBHOOK_URL", ("discord", "webhook_url")),
    ("STATE_PATH", "STATE_FILE", ("state", "path")),
)


def get_flat_env_settings_source() -> dict[str, Any]:
    env = os.environ
    data: dict[str, Any] = {}

    _apply_alias_mappings(env, data, _CANONICAL_MAPPINGS)
    _apply_deprecated_aliases(env, data, _DEPRECATED_VALUE_MAPPINGS)

    return data
