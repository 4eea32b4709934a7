import calendar
from datetime import date, datetime, timedelta
from typing import Tuple, Union

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


# ---- Month boundaries ----

def start_of_month(d: date) -> date:
    return d.replace(day=1)


def end_of_month(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def month_range(d: date) -> Tuple[date, date]:
    """Inclusive first and last day of the month containing `d`."""
    return start_of_month(d), end_of_month(d)


def days_in_month(d: date) -> int:
    return calendar.monthrange(d.year, d.month)[1]


def add_months(d: date, months: int) -> date:
    """Shift by whole calendar months, clamping to the last day of the target month."""
    idx = d.year * 12 + (d.month - 1) + months
    year, month = divmod(idx, 12)
    month += 1
    return date(year, month, min(d.day, calendar.monthrange(year, month)[1]))


def each_day(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


# ---- Calendar differences (truncated toward zero, negative when `later` is earlier) ----

def _as_date(d: Union[date, datetime]) -> date:
    return d.date() if isinstance(d, datetime) else d


def difference_in_days(later: Union[date, datetime], earlier: Union[date, datetime]) -> int:
    return (_as_date(later) - _as_date(earlier)).days


def difference_in_weeks(later: Union[date, datetime], earlier: Union[date, datetime]) -> int:
    return int(difference_in_days(later, earlier) / 7)


def difference_in_months(later: Union[date, datetime], earlier: Union[date, datetime]) -> int:
    a, b = _as_date(later), _as_date(earlier)
    months = (a.year - b.year) * 12 + (a.month - b.month)
    if months > 0 and a.day < b.day:
        months -= 1
    elif months < 0 and a.day > b.day:
        months += 1
    return months


# ---- Display ----

def format_currency(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_short_date(d: date) -> str:
    """e.g. 'Mar 5'"""
    return f"{d.strftime('%b')} {d.day}"


def format_long_date(d: date) -> str:
    """e.g. 'Mar 5, 2025'"""
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def format_month_label(d: date) -> str:
    """e.g. 'Mar 2025'"""
    return d.strftime("%b %Y")


def day_name(d: date) -> str:
    # weekday(): Monday=0; names are indexed Sunday=0
    return DAY_NAMES[(d.weekday() + 1) % 7]
