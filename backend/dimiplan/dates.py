"""Date and timestamp normalization for the MySQL DATE / DATETIME columns."""

from datetime import date, datetime

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"


def now_timestamp() -> datetime:
    """Current local time truncated to whole seconds (DATETIME precision)."""
    return datetime.now().replace(microsecond=0)


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.strftime(TIMESTAMP_FORMAT)


def parse_date(value: date | datetime | str | None) -> date | None:
    """
    Normalize a date input to a date (stored as YYYY-MM-DD).

    Accepts date/datetime objects and ISO strings such as "2024-03-01" or
    "2024-03-01T14:30:45"; empty values become None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return datetime.strptime(text[:10], DATE_FORMAT).date()
