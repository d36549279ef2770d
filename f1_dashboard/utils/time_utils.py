"""
Timezone-aware datetime utilities.

Session times are published in Japan Standard Time (UTC+9) by the Japanese
sources and in UTC (with offsets) by OpenF1; both are normalized here.
"""
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

JST = timezone(timedelta(hours=9), name="JST")

_TIME_RE = re.compile(r"(\d{1,2})\s*[:：]\s*(\d{2})")
_JA_DATE_RE = re.compile(r"(\d{1,2})月\s*(\d{1,2})日")
_ISO_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def current_year() -> int:
    return utc_now().year


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC. If naive, assume it is already UTC.

    Args:
        dt: Input datetime (aware or naive).

    Returns:
        UTC-aware datetime.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_openf1_timestamp(ts: str) -> Optional[datetime]:
    """
    Parse an OpenF1 API timestamp string to a UTC-aware datetime.

    OpenF1 returns ISO 8601 strings like '2024-03-02T15:00:00+00:00'.

    Args:
        ts: Timestamp string from OpenF1 API.

    Returns:
        UTC-aware datetime, or None if parsing fails.
    """
    if not ts:
        return None
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
        return to_utc(dt)
    except (ValueError, TypeError, AttributeError):
        return None


def parse_clock(text: str) -> Optional[tuple[int, int]]:
    """
    Extract the first ``H:MM`` clock reading from text.

    Hours above 23 are kept as-is ("25:00" is a common Japanese way to
    write 01:00 on the following day).
    """
    match = _TIME_RE.search(text or "")
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > 47:
        return None
    return hours, minutes


def jst_to_utc(day: str, clock: str) -> Optional[tuple[str, str, str]]:
    """
    Convert a JST calendar date and wall-clock reading to UTC.

    ``clock`` may exceed 24:00; the excess rolls the date forward and the
    JST time is renormalized into 00:00-23:59. Subtracting the fixed 9 hour
    offset may roll the date back, so the UTC hour always stays in 0-23.

    Args:
        day: JST date as ``YYYY-MM-DD``.
        clock: JST time such as ``"14:00"`` or ``"25:30"``.

    Returns:
        ``(utc_date, utc_time, jst_time)`` as ``YYYY-MM-DD``/``HH:MM`` strings,
        or None if either input cannot be parsed.
    """
    parsed = parse_clock(clock)
    if parsed is None:
        return None
    try:
        base = date.fromisoformat(day)
    except (TypeError, ValueError):
        return None

    hours, minutes = parsed
    local = datetime(base.year, base.month, base.day, tzinfo=JST) + timedelta(hours=hours, minutes=minutes)
    utc = local.astimezone(timezone.utc)
    return utc.date().isoformat(), utc.strftime("%H:%M"), local.strftime("%H:%M")


def utc_to_jst_clock(dt: datetime) -> str:
    """Format a datetime as a JST ``HH:MM`` reading."""
    return to_utc(dt).astimezone(JST).strftime("%H:%M")


def parse_schedule_date(text: str, year: int) -> Optional[str]:
    """
    Parse a schedule date written as ``M月D日`` or ``YYYY-MM-DD``.

    Returns:
        ISO date string, or None if no date is found or it is not a real date.
    """
    text = text or ""
    iso = _ISO_DATE_RE.search(text)
    if iso:
        try:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3))).isoformat()
        except ValueError:
            return None
    ja = _JA_DATE_RE.search(text)
    if ja:
        try:
            return date(year, int(ja.group(1)), int(ja.group(2))).isoformat()
        except ValueError:
            return None
    return None
