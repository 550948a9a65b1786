import calendar
import math
from datetime import date, datetime, timedelta

PERIODS = ("day", "week", "month")


def to_local_date_string(value) -> str:
    """Format a date as YYYY-MM-DD from its local calendar fields.

    Aware datetimes are moved into the local timezone first so a
    timestamp near midnight never lands on the UTC day.
    """
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return local_date(value)
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()


def parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def local_date(ts: datetime) -> date:
    # midnight normalization
    if ts.tzinfo is not None:
        ts = ts.astimezone()
    return ts.date()


def day_diff(later: date, earlier: date) -> int:
    return (later - earlier).days


def days_in_month(year: int, month: int) -> int:
    """Month is zero-based (January = 0)."""
    return calendar.monthrange(year, month + 1)[1]


def first_weekday_of_month(year: int, month: int) -> int:
    """Weekday of the 1st with Sunday = 0."""
    return (date(year, month + 1, 1).weekday() + 1) % 7


def generate_calendar_grid(year: int, month: int):
    days = [None] * first_weekday_of_month(year, month)
    for i in range(1, days_in_month(year, month) + 1):
        days.append(date(year, month + 1, i))
    return days


def pad_grid(grid):
    remainder = len(grid) % 7
    if remainder:
        return list(grid) + [None] * (7 - remainder)
    return list(grid)


def period_range(period: str, today: date):
    if period == "day":
        return today, today

    if period == "week":
        # Week starts on Sunday
        start_date = today - timedelta(days=(today.weekday() + 1) % 7)
        end_date = start_date + timedelta(days=6)
        return start_date, end_date

    if period == "month":
        start_date = today.replace(day=1)
        end_date = today.replace(day=days_in_month(today.year, today.month - 1))
        return start_date, end_date

    raise ValueError(f"Unknown period: {period}")


def year_range(year: int):
    return date(year, 1, 1), date(year, 12, 31)


def ranges_overlap(a_start, a_end, b_start, b_end) -> bool:
    # an inverted range overlaps nothing
    if a_start > a_end or b_start > b_end:
        return False
    return a_start <= b_end and a_end >= b_start


def percent(part: int, whole: int) -> int:
    """Whole-number percentage rounded half-up; 0 when whole is 0."""
    if not whole:
        return 0
    return int(math.floor(100 * part / whole + 0.5))


def generate_color(text: str) -> str:
    h = 0
    for ch in text:
        h = (ord(ch) + ((h << 5) - h)) & 0xFFFFFFFF
    return "#" + format(h & 0x00FFFFFF, "06X")
