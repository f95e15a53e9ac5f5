"""
Deadline date arithmetic.

Deadlines are written as YYYY-MM-DD after the 📅 glyph. Postponing either
applies one of the fixed steps or resolves a date expression relative to the
current deadline.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_PROSE_PREFIXES = ("before ", "by ", "due ", "on ")
_MONTH_DAY_FORMATS = ("%B %d", "%b %d", "%m/%d")
_FULL_DATE_FORMATS = ("%Y-%m-%d", "%B %d, %Y", "%b %d, %Y")
_RELATIVE = re.compile(r"^in (\d+) (day|week)s?$")


def nice_date(d: date) -> str:
    """Format a date the way deadlines are written (YYYY-MM-DD)."""
    return d.isoformat()


def _strip_prose(text: str) -> str:
    lowered = text.lower()
    for prefix in _PROSE_PREFIXES:
        if lowered.startswith(prefix):
            return text[len(prefix):].strip()
    return text


def _weekday_after(base: date, text: str) -> Optional[date]:
    # "friday" is the next Friday strictly after base; "next friday" a week later still
    name = text.lower()
    skip_week = name.startswith("next ")
    if skip_week:
        name = name[len("next "):].strip()
    if name not in WEEKDAYS:
        return None
    ahead = (WEEKDAYS.index(name) - base.weekday()) % 7 or 7
    if skip_week and ahead < 7:
        ahead += 7
    return base + timedelta(days=ahead)


def _relative_to(base: date, text: str) -> Optional[date]:
    m = _RELATIVE.match(text.lower())
    if not m:
        return None
    amount = int(m.group(1))
    return base + (timedelta(weeks=amount) if m.group(2) == "week" else timedelta(days=amount))


def _calendar_date(base: date, text: str) -> Optional[date]:
    for fmt in _FULL_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    for fmt in _MONTH_DAY_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt).date().replace(year=base.year)
        except ValueError:
            continue
        # A month/day already behind base means next year's
        return parsed if parsed >= base else parsed.replace(year=base.year + 1)
    return None


def parse_date(date_str: str, today: Optional[date] = None) -> Optional[str]:
    """
    Resolve a date expression to YYYY-MM-DD.

    Understands ISO dates, "today"/"tomorrow", weekday names ("Friday",
    "next Monday"), "in N days|weeks", month-day forms ("March 15", "3/15")
    and prose prefixes ("by Friday", "due 2026-03-01").

    Args:
        date_str: Expression to resolve
        today: Base date for relative forms (defaults to the current date)

    Returns:
        ISO date string, or None if the expression is not understood
    """
    text = (date_str or "").strip()
    if not text:
        return None
    base = today or datetime.now().date()

    keyword = text.lower()
    if keyword == "today":
        return nice_date(base)
    if keyword == "tomorrow":
        return nice_date(base + timedelta(days=1))

    text = _strip_prose(text)
    for resolve in (_calendar_date, _weekday_after, _relative_to):
        resolved = resolve(base, text)
        if resolved is not None:
            return nice_date(resolved)
    return None


def postpone_date(deadline: str, option: str) -> Optional[str]:
    """
    Move a YYYY-MM-DD deadline.

    Args:
        deadline: Current deadline
        option: "a day", "a week", "following Monday", or any expression
                parse_date understands (resolved relative to the deadline)

    Returns:
        New ISO date, or None if the option is not understood
    """
    current = datetime.strptime(deadline, "%Y-%m-%d").date()
    if option == "a day":
        return nice_date(current + timedelta(days=1))
    if option == "a week":
        return nice_date(current + timedelta(days=7))
    if option == "following Monday":
        return nice_date(_weekday_after(current, "monday"))
    return parse_date(option, today=current)
