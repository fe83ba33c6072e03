"""
Sentry initialization for centralized error tracking.
Observes reality, never controls logic.
"""
import logging
from typing import Any, Dict

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from priceglass.config import config
from priceglass.logger import logger


def initialize_sentry():
    """Initialize Sentry SDK if DSN is configured."""
    if not config.has_sentry:
        logger.info("Sentry not configured, skipping initialization")
        return

    try:
        sentry_sdk.init(
            dsn=config.SENTRY_DSN,
            environment=config.ENVIRONMENT,
            integrations=[
                AsyncioIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
            ],
            traces_sample_rate=0.1,
            send_default_pii=False,
            before_send=_enrich_sentry_event
        )

        logger.info("Sentry initialized for error tracking")

    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")


def _enrich_sentry_event(event: Dict[str, Any], hint: Dict[str, Any]) -> Dict[str, Any]:
    """Tag events with system context and group by exception type and module."""
    try:
        event.setdefault("tags", {})
        event["tags"]["system"] = "priceglass"
        event["tags"]["environment"] = config.ENVIRONMENT

        if "exception" in event:
            exceptions = event["exception"].get("values", [])
            if exceptions:
                exc = exceptions[0]
                event["fingerprint"] = [
                    "{{ default }}",
                    exc.get("type", "Unknown"),
                    exc.get("module", "unknown")
                ]

    except Exception as e:
        logger.error(f"Failed to enrich Sentry event: {e}")

    return event


def capture_ai_fallback(query: str, reason: str):
    """Report that placeholder rows replaced the AI answer."""
    if not config.has_sentry:
        return

    with sentry_sdk.new_scope() as scope:
        scope.set_tag("fallback", "placeholder_prices")
        scope.set_extra("query", query[:200])
        scope.set_extra("reason", reason)
        scope.set_level("warning")

        sentry_sdk.capture_message(f"Price estimate fell back to placeholders: {reason}", "warning")


def capture_backend_failure(operation: str, error: BaseException):
    """Report a request that ended in a failure envelope."""
    if not config.has_sentry:
        return

    with sentry_sdk.new_scope() as scope:
        scope.set_tag("operation", operation)
        scope.set_level("error")
        sentry_sdk.capture_exception(error)
