from datetime import date, datetime, timedelta, timezone
from typing import Iterator, List, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from planboard.errors import InvalidFormat

__all__ = ["now_utc", "now_utc_str", "now_local", "today_local", "parse_date", "format_date", "iter_dates",
           "normalize_due_date", "get_monday", "week_dates"]

DATE_FORMAT = "%Y-%m-%d"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_utc_str() -> str:
    """Current UTC time as 'YYYY-MM-DD HH:MM:SS'."""
    return now_utc().strftime("%Y-%m-%d %H:%M:%S")


def _zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidFormat(f"unknown timezone: {tz_name!r}") from e


def now_local(tz_name: str) -> datetime:
    """Current wall-clock time in the given IANA timezone."""
    return now_utc().astimezone(_zone(tz_name))


def today_local(tz_name: str) -> date:
    return now_local(tz_name).date()


def parse_date(value: str) -> date:
    """Parse a 'YYYY-MM-DD' calendar date."""
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise InvalidFormat(f"invalid date: {value!r}, expected YYYY-MM-DD") from e


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from start through end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def normalize_due_date(value: Union[str, date, datetime, None], tz_name: str) -> str | None:
    """Reduce a due value to the calendar date it falls on for the user.

    Timestamps (aware datetimes or ISO strings with a time part) are converted to the user's
    timezone first; the reminder is then due by the end of that day. Naive datetimes are
    taken as already local.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(_zone(tz_name))
        return format_date(value.date())
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return format_date(parse_date(text))
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidFormat(f"invalid due date: {value!r}") from e
        return normalize_due_date(parsed, tz_name)
    raise InvalidFormat(f"unsupported due date value: {value!r}")


def get_monday(d: date) -> date:
    return d - timedelta(days=d.weekday())


def week_dates(today: date, week_offset: int = 0) -> List[str]:
    """The seven dates, Monday first, of the week ``week_offset`` weeks from ``today``'s."""
    monday = get_monday(today) + timedelta(weeks=week_offset)
    return [format_date(monday + timedelta(days=i)) for i in range(7)]
