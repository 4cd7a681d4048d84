"""
Sentry error tracking.
"""

from typing import Optional

import sentry_sdk
import structlog
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from ghostwriter.core.config import Settings

logger = structlog.get_logger(__name__)

_sentry_initialized = False


def init_sentry(settings: Settings) -> None:
    """Initialize Sentry error tracking when a DSN is configured."""
    global _sentry_initialized

    if _sentry_initialized or not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        # Don't send PII
        send_default_pii=False,
    )

    _sentry_initialized = True
    logger.info(
        "Sentry initialized",
        environment=settings.sentry_environment,
        sample_rate=settings.sentry_traces_sample_rate,
    )


def capture_exception(error: BaseException, context: Optional[dict] = None) -> None:
    """
    Capture an exception to Sentry with additional context.

    No-op until init_sentry has run.
    """
    if not _sentry_initialized:
        return

    if context:
        sentry_sdk.set_context("additional", context)
    sentry_sdk.capture_exception(error)


def set_user_context(user_id: str) -> None:
    if not _sentry_initialized:
        return
    sentry_sdk.set_user({"id": user_id})
