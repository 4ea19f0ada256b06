import logging
import os

logger = logging.getLogger(__name__)


def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _parse_bool(env_var: str, default: bool) -> bool:
    raw_value = os.getenv(env_var)
    if raw_value is None or not raw_value.strip():
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_float(env_var: str, default: float | None, *, minimum: float | None = None) -> float | None:
    raw_value = os.getenv(env_var)
    if raw_value is None or not raw_value.strip():
        return default

    try:
        value = float(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid number (got %r); defaulting to %r",
            env_var,
            raw_value,
            default,
        )
        return default

    if minimum is not None and value < minimum:
        logger.warning("%s must be >= %s; defaulting to %r", env_var, minimum, default)
        return default

    return value


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# Ratings never drop below this value when set. Unset means no floor.
RATING_FLOOR = _parse_float("RATING_FLOOR", None)

AUTO_VALIDATION_ENABLED = _parse_bool("AUTO_VALIDATION_ENABLED", True)
AUTO_VALIDATION_WINDOW_HOURS = _parse_float(
    "AUTO_VALIDATION_WINDOW_HOURS", 24.0, minimum=0.0
)
AUTO_VALIDATION_INTERVAL_SECONDS = _parse_float(
    "AUTO_VALIDATION_INTERVAL_SECONDS", 3600.0, minimum=1.0
)
