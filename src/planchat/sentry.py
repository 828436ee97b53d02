"""Sentry error tracking integration for planchat.

Usage:
    from planchat.sentry import init_sentry
    init_sentry()

An empty DSN leaves Sentry disabled, which is the normal state in
development and tests.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from planchat.config import settings

if TYPE_CHECKING:
    from sentry_sdk._types import Event, Hint

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = {
    "token",
    "api_key",
    "apikey",
    "secret",
    "password",
    "authorization",
    "bearer",
    "openai_api_key",
    "gemini_api_key",
    "anthropic_api_key",
    "sentry_dsn",
}

_initialized = False


def init_sentry(
    dsn: str | None = None,
    environment: str | None = None,
    release: str | None = None,
    traces_sample_rate: float = 0.0,
) -> bool:
    """Initialize the Sentry SDK.

    Args:
        dsn: Sentry DSN. Falls back to the configured ``sentry_dsn``.
        environment: Environment name, defaults to ``sentry_environment``.
        release: Release version. Auto-detected from the installed package.
        traces_sample_rate: Sample rate for performance tracing (0.0-1.0).

    Returns:
        True if Sentry was initialized, False if skipped.
    """
    global _initialized

    if _initialized:
        logger.debug("Sentry already initialized")
        return True

    dsn = settings.sentry_dsn if dsn is None else dsn
    if not dsn:
        logger.info("No SENTRY_DSN configured, error tracking disabled")
        return False

    environment = environment or settings.sentry_environment
    if release is None:
        try:
            from importlib.metadata import PackageNotFoundError, version

            release = f"planchat@{version('planchat')}"
        except PackageNotFoundError:
            release = "planchat@unknown"

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        send_default_pii=False,
        before_send=_before_send,
    )

    _initialized = True
    logger.info(f"Sentry initialized: environment={environment}, release={release}")
    return True


def _before_send(event: Event, hint: Hint) -> Event | None:
    """Drop transient network errors and scrub credentials."""
    if "exc_info" in hint:
        exc_type, _, _ = hint["exc_info"]
        if exc_type.__name__ in ("TimeoutError", "ConnectError", "ReadTimeout"):
            return None

    if "request" in event:
        _scrub_dict(cast(dict[str, Any], event["request"]))

    if "breadcrumbs" in event:
        breadcrumbs = cast(dict[str, Any], event["breadcrumbs"])
        for breadcrumb in breadcrumbs.get("values", []):
            if "data" in breadcrumb:
                _scrub_dict(breadcrumb["data"])

    return event


def _scrub_dict(data: dict[str, Any]) -> None:
    for key in list(data.keys()):
        if key.lower() in SENSITIVE_KEYS:
            data[key] = "[REDACTED]"
        elif isinstance(data[key], dict):
            _scrub_dict(data[key])


def capture_exception(exception: BaseException | None = None) -> str | None:
    if not _initialized:
        return None
    return sentry_sdk.capture_exception(exception)


def flush(timeout: float = 2.0) -> None:
    """Flush pending events before shutdown."""
    if not _initialized:
        return
    sentry_sdk.flush(timeout=timeout)


def is_enabled() -> bool:
    return _initialized
