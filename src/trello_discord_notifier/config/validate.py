from __future__ import annotations

import ipaddress
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlsplit

from pydantic import ValidationError

from trello_discord_notifier.config.settings import Settings


@dataclass(frozen=True)
class ConfigValidationIssue:
    path: str
    message: str


class ConfigValidationError(ValueError):
    def __init__(self, issues: Iterable[ConfigValidationIssue]):
        self.issues = list(issues)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = ["Configuration is invalid:"]
        for issue in self.issues:
            lines.append(f"- {issue.path}: {issue.message}")
        return "\n".join(lines)


def issues_from_pydantic_error(error: ValidationError) -> list[ConfigValidationIssue]:
    issues: list[ConfigValidationIssue] = []
    for item in error.errors(include_url=False, include_input=False):
        loc = ".".join(str(part) for part in item.get("loc", ())) or "<root>"
        msg = item.get("msg", "Invalid value")
        issues.append(ConfigValidationIssue(path=loc, message=msg))
    return issues


def _is_local_upstream_host(host: str) -> bool:
    normalized = host.strip().lower().rstrip(".")
    if normalized in {"localhost", "localhost.localdomain"}:
        return True

    try:
        ip = ipaddress.ip_address(normalized)
    except ValueError:
        return False

    return ip.is_loopback or ip.is_link_local or ip.is_unspecified


def _validate_upstream_url(
    *,
    url: str,
    path: str,
    settings: Settings,
    issues: list[ConfigValidationIssue],
) -> None:
    transport = settings.hardening.transport
    parts = urlsplit(url.strip())

    if parts.scheme not in {"http", "https"} or not parts.hostname:
        # The URL carries credentials, so it is never echoed back.
        issues.append(
            ConfigValidationIssue(path=path, message="Must be an absolute http(s) URL.")
        )
        return

    if parts.scheme == "http" and not transport.allow_insecure_http:
        issues.append(
            ConfigValidationIssue(
                path=path,
                message=(
                    "Plain HTTP upstream is not allowed by default. "
                    "Use https:// or set hardening.transport.allow_insecure_http=true."
                ),
            )
        )

    if not transport.allow_local_upstreams and _is_local_upstream_host(parts.hostname):
        issues.append(
            ConfigValidationIssue(
                path=path,
                message=(
                    "Loopback/link-local upstream hosts are blocked by default. "
                    "Set hardening.transport.allow_local_upstreams=true to override."
                ),
            )
        )


def validate_settings(settings: Settings) -> None:
    issues: list[ConfigValidationIssue] = []

    log_level = settings.observability.log_level.upper()
    allowed_levels = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
    if log_level not in allowed_levels:
        issues.append(
            ConfigValidationIssue(
                path="observability.log_level",
                message=(
                    f"Unsupported log level {settings.observability.log_level!r} "
                    f"(allowed: {sorted(allowed_levels)})"
                ),
            )
        )

    _validate_upstream_url(
        url=settings.trello.board_url.get_secret_value(),
        path="trello.board_url",
        settings=settings,
        issues=issues,
    )
    _validate_upstream_url(
        url=settings.discord.webhook_url.get_secret_value(),
        path="discord.webhook_url",
        settings=settings,
        issues=issues,
    )

    transport = settings.hardening.transport
    for section, verify_tls in (
        ("trello", settings.trello.verify_tls),
        ("discord", settings.discord.verify_tls),
    ):
        if not verify_tls and not transport.allow_insecure_tls:
            issues.append(
                ConfigValidationIssue(
                    path=f"{section}.verify_tls",
                    message=(
                        "Disabling TLS verification is not allowed by default. "
                        "Set hardening.transport.allow_insecure_tls=true to override "
                        "(not recommended)."
                    ),
                )
            )

    if issues:
        raise ConfigValidationError(issues)
