# =============================================================================
# Sentry Error Tracking Integration
# =============================================================================
#
# Setup:
#   1. Create a Python project at sentry.io
#   2. Copy DSN to .env: SENTRY_DSN=https://...@sentry.io/...
#
# Usage:
#   create_app() calls init_sentry() at startup; the 500 handler calls
#   capture_exception(). Without a DSN every helper is a no-op apart from
#   local logging.
#
# =============================================================================

import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from taskapi.config import Settings

logger = logging.getLogger(__name__)

_FILTERED_HEADERS = ("authorization", "cookie", "x-api-key")


def init_sentry(settings: Settings) -> bool:
    """
    Initialize Sentry error tracking.

    Returns True if initialized, False if skipped.
    """
    if not settings.sentry_dsn:
        logger.info("SENTRY_DSN not set - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            LoggingIntegration(
                level=logging.INFO,
                event_level=None,  # errors are reported via capture_exception()
            ),
        ],
        # Don't send PII by default
        send_default_pii=False,
        before_send=_filter_events,
        before_send_transaction=_filter_transactions,
    )

    logger.info(f"Sentry initialized for {settings.environment}")
    return True


def _enabled() -> bool:
    return sentry_sdk.get_client().is_active()


def _filter_events(event: dict, hint: dict) -> dict | None:
    """Drop expected client errors and scrub credentials."""
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]

        # Domain errors below 500 are expected outcomes, not incidents
        from taskapi.core.errors import AppError
        if isinstance(exc_value, AppError) and exc_value.status_code < 500:
            return None

    headers = event.get("request", {}).get("headers")
    if headers:
        for key in list(headers.keys()):
            if key.lower() in _FILTERED_HEADERS:
                headers[key] = "[Filtered]"

    return event


def _filter_transactions(event: dict, hint: dict) -> dict | None:
    """Filter out health check transactions."""
    if event.get("transaction", "") in ("/health", "/healthz", "/ready"):
        return None
    return event


def capture_exception(error: Exception, **context) -> str | None:
    """
    Capture an exception to Sentry.

    Returns the event ID if captured, None otherwise.
    """
    if not _enabled():
        return None

    with sentry_sdk.new_scope() as scope:
        for key, value in context.items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(error)


def set_user(user_id: str, email: str | None = None, **extra) -> None:
    """Set the current user context for error reports."""
    if _enabled():
        sentry_sdk.set_user({
            "id": user_id,
            "email": email,
            **extra,
        })
