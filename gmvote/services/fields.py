from datetime import date, datetime

from gmvote.services.voting.errors import ConfigurationError


def parse_pct(value, label):
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{label} must be a number.") from None
    if not 0 <= parsed <= 100:
        raise ConfigurationError(f"{label} must be between 0 and 100.")
    return parsed


def parse_revote_count(value):
    if isinstance(value, bool):
        raise ConfigurationError("Maximum revote count must be a whole number.")
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError("Maximum revote count must be a whole number.") from None
    if parsed != float(value):
        raise ConfigurationError("Maximum revote count must be a whole number.")
    if parsed < 0:
        raise ConfigurationError("Maximum revote count cannot be negative.")
    return parsed


def require_title(value, label="Meeting title"):
    title = (value or "").strip() if isinstance(value, str) or value is None else ""
    if not title:
        raise ConfigurationError(f"{label} is required.")
    return title


def ensure_date(value, label):
    if value is None:
        return None
    if isinstance(value, datetime) or not isinstance(value, date):
        raise ConfigurationError(f"{label} must be a date.")
    return value


def ensure_datetime(value, label):
    if value is None:
        return None
    if not isinstance(value, datetime):
        raise ConfigurationError(f"{label} must be a date and time.")
    return value


def ensure_window(start, end):
    if start is not None and end is not None and start >= end:
        raise ConfigurationError("Vote window must end after it starts.")
