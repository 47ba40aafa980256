"""
Calendar-week windows in a user's local time

Offsets are fixed signed minutes east of UTC (no DST rules). Local week
boundaries are Monday 00:00; the ISO-8601 convention (the Thursday of a week
decides its year) names the week.
"""

from datetime import date, datetime, timedelta, timezone
import re

WEEK_ID_PATTERN = re.compile(r"^(\d{4})-W(\d{2})$")


def _as_utc(instant: datetime) -> datetime:
    """Naive datetimes are treated as UTC"""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def _shift(instant: datetime, tz_offset_minutes: int) -> datetime:
    return _as_utc(instant) + timedelta(minutes=tz_offset_minutes)


def local_day(instant: datetime, tz_offset_minutes: int = 0) -> date:
    """Calendar date of instant as seen at the given offset"""
    return _shift(instant, tz_offset_minutes).date()


def week_identifier_for_day(day: date) -> str:
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def week_identifier(instant: datetime, tz_offset_minutes: int = 0) -> str:
    """
    ISO week label (YYYY-Www) of the local week containing instant

    Example:
        >>> week_identifier(datetime(2024, 12, 30, 12, tzinfo=timezone.utc))
        '2025-W01'
    """
    return week_identifier_for_day(local_day(instant, tz_offset_minutes))


def week_range(instant: datetime, tz_offset_minutes: int = 0) -> tuple[datetime, datetime]:
    """
    Half-open [start, end) of the local week containing instant

    Both bounds are UTC instants: local Monday 00:00 with the offset undone,
    so they compare directly against stored timestamps.
    """
    day = local_day(instant, tz_offset_minutes)
    monday = day - timedelta(days=day.weekday())
    local_start = datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)
    start = local_start - timedelta(minutes=tz_offset_minutes)
    return start, start + timedelta(days=7)


def parse_week_identifier(week_id: str) -> tuple[int, int]:
    """Split 'YYYY-Www' into (iso_year, iso_week); raises ValueError if malformed"""
    match = WEEK_ID_PATTERN.match(week_id or "")
    if not match:
        raise ValueError(f"Malformed week identifier: {week_id!r}")
    year, week = int(match.group(1)), int(match.group(2))
    # date.fromisocalendar rejects week 53 in 52-week years
    date.fromisocalendar(year, week, 1)
    return year, week


def week_start_for_identifier(week_id: str, tz_offset_minutes: int = 0) -> datetime:
    """UTC instant of local Monday 00:00 for the named ISO week"""
    year, week = parse_week_identifier(week_id)
    monday = date.fromisocalendar(year, week, 1)
    local_start = datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)
    return local_start - timedelta(minutes=tz_offset_minutes)
