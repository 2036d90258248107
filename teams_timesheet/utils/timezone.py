from datetime import date, datetime, timezone


def get_utc_now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def get_utc_today() -> date:
    return get_utc_now().date()


def get_adaptive_card_date_string(value) -> str:
    """
    Format a date for the Teams DATE() card macro so the client renders it in
    the reader's locale.
    """
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    return "{{DATE(" + value.strftime("%Y-%m-%dT%H:%M:%SZ") + ")}}"
