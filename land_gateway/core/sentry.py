"""Sentry wiring for the gateway.

Misconfigured clients sometimes post raw key material; it is redacted,
along with auth headers, before an event leaves the process.
"""

from collections.abc import MutableMapping
from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = structlog.get_logger()

REDACTED = "[REDACTED]"
_REDACT_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})
_REDACT_FIELDS = frozenset({"privatekey", "private_key", "mnemonic", "seed"})


def _redact(mapping: Any, names: frozenset[str]) -> None:
    if not isinstance(mapping, MutableMapping):
        return
    for key in list(mapping):
        if str(key).lower() in names:
            mapping[key] = REDACTED


def scrub_event(event: dict, hint: dict) -> dict:
    request = event.get("request") or {}
    _redact(request.get("headers"), _REDACT_HEADERS)
    _redact(request.get("data"), _REDACT_FIELDS)
    return event


def init_sentry(dsn: str | None, environment: str = "development", release: str | None = None) -> bool:
    """Initialise Sentry once, before the app object exists. Returns whether it is active."""
    if not dsn:
        logger.warning("sentry.disabled", reason="no DSN configured")
        return False

    sample_rate = 0.1 if environment == "production" else 1.0
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=sample_rate,
        integrations=[FastApiIntegration(transaction_style="url"), SqlalchemyIntegration()],
        send_default_pii=False,
        before_send=scrub_event,
    )
    logger.info("sentry.initialized", environment=environment, traces_sample_rate=sample_rate)
    return True
