import logging
import os

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from ..config import _parse_float

logger = logging.getLogger(__name__)


def init_sentry() -> bool:
    """Initialise Sentry from ``SENTRY_*`` env vars. Returns whether it ran."""

    dsn = (os.getenv("SENTRY_DSN") or "").strip()
    if not dsn:
        logger.info("SENTRY_DSN not provided; skipping Sentry initialization.")
        return False

    environment = (os.getenv("SENTRY_ENVIRONMENT") or "").strip() or None
    sentry_sdk.init(
        dsn=dsn,
        integrations=[FastApiIntegration()],
        environment=environment,
        traces_sample_rate=_parse_float("SENTRY_TRACES_SAMPLE_RATE", 0.0, minimum=0.0),
        profiles_sample_rate=_parse_float(
            "SENTRY_PROFILES_SAMPLE_RATE", 0.0, minimum=0.0
        ),
    )
    logger.info(
        "Initialized Sentry%s",
        f" (environment={environment})" if environment else "",
    )
    return True
