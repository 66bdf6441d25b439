"""
iCalendar recurrence rules (RFC 5545 RRULE subset).

Supported parts: FREQ (DAILY, WEEKLY, MONTHLY, YEARLY), INTERVAL, BYDAY
(with ordinals for MONTHLY/YEARLY, e.g. 1SU or -1FR), BYMONTHDAY, COUNT,
UNTIL and WKST. Unknown parts are ignored so rules written by other
calendar tools still load.

    rule = parse_rrule("RRULE:FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE")
    format_rrule(rule)        # 'FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE'
    describe_rrule(text)      # 'Every 2 weeks on Monday, Wednesday'
    expand(rule, dtstart, window_start, window_end)  # [date, ...]

Expansion is delegated to dateutil.rrule.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import List, Optional, Tuple

from dateutil import rrule as du

FREQUENCIES = ('DAILY', 'WEEKLY', 'MONTHLY', 'YEARLY')

# Calendar order used for canonical output
WEEKDAY_CODES = ('SU', 'MO', 'TU', 'WE', 'TH', 'FR', 'SA')

WEEKDAY_NAMES = {
    'SU': 'Sunday',
    'MO': 'Monday',
    'TU': 'Tuesday',
    'WE': 'Wednesday',
    'TH': 'Thursday',
    'FR': 'Friday',
    'SA': 'Saturday',
}

ORDINAL_NAMES = {1: 'first', 2: 'second', 3: 'third', 4: 'fourth', 5: 'fifth', -1: 'last'}

# Upper bound on dates produced by a single expansion
MAX_OCCURRENCES = 366

_FREQ_MAP = {
    'DAILY': du.DAILY,
    'WEEKLY': du.WEEKLY,
    'MONTHLY': du.MONTHLY,
    'YEARLY': du.YEARLY,
}

_DU_WEEKDAYS = {
    'SU': du.SU, 'MO': du.MO, 'TU': du.TU, 'WE': du.WE,
    'TH': du.TH, 'FR': du.FR, 'SA': du.SA,
}

_BYDAY_PATTERN = re.compile(r'^([+-]?\d{1,2})?(SU|MO|TU|WE|TH|FR|SA)$')
_UNTIL_PATTERN = re.compile(r'^(\d{4})(\d{2})(\d{2})(T\d{6}Z?)?$')


class RecurrenceError(ValueError):
    """Raised for recurrence rules that cannot be understood."""


@dataclass(frozen=True)
class WeekdayRule:
    """A BYDAY entry: weekday code plus optional ordinal (1 = first, -1 = last)."""
    code: str
    ordinal: Optional[int] = None

    def __str__(self):
        return f"{self.ordinal}{self.code}" if self.ordinal else self.code


@dataclass(frozen=True)
class RecurrenceRule:
    freq: str
    interval: int = 1
    by_day: Tuple[WeekdayRule, ...] = ()
    by_month_day: Tuple[int, ...] = ()
    count: Optional[int] = None
    until: Optional[date] = None
    week_start: str = 'MO'


# =============================================================================
# Decoding
# =============================================================================

def split_rrule(text: str) -> dict:
    """
    Split 'RRULE:KEY=VALUE;...' into an upper-cased dict.
    Components without '=' are skipped.
    """
    body = (text or '').strip()
    if body.upper().startswith('RRULE:'):
        body = body[len('RRULE:'):]

    parts = {}
    for component in body.split(';'):
        if '=' not in component:
            continue
        key, _, value = component.partition('=')
        key = key.strip().upper()
        value = value.strip().upper()
        if key and value:
            parts[key] = value
    return parts


def _positive_int(parts: dict, key: str) -> Optional[int]:
    if key not in parts:
        return None
    try:
        value = int(parts[key])
    except ValueError:
        raise RecurrenceError(f"{key} must be a whole number, got '{parts[key]}'")
    if value < 1:
        raise RecurrenceError(f"{key} must be at least 1")
    return value


def _parse_by_day(value: str, freq: str) -> Tuple[WeekdayRule, ...]:
    rules = []
    for token in value.split(','):
        token = token.strip()
        match = _BYDAY_PATTERN.match(token)
        if not match:
            raise RecurrenceError(f"Invalid BYDAY value: '{token}'")
        ordinal = int(match.group(1)) if match.group(1) else None
        if ordinal is not None:
            if freq not in ('MONTHLY', 'YEARLY'):
                raise RecurrenceError("Ordinal BYDAY values are only valid for MONTHLY or YEARLY rules")
            if ordinal == 0 or not -53 <= ordinal <= 53:
                raise RecurrenceError(f"Invalid BYDAY ordinal: '{token}'")
        rules.append(WeekdayRule(code=match.group(2), ordinal=ordinal))
    return tuple(rules)


def _parse_by_month_day(value: str) -> Tuple[int, ...]:
    days = []
    for token in value.split(','):
        try:
            day = int(token)
        except ValueError:
            raise RecurrenceError(f"Invalid BYMONTHDAY value: '{token}'")
        if day == 0 or not -31 <= day <= 31:
            raise RecurrenceError(f"BYMONTHDAY out of range: {day}")
        days.append(day)
    return tuple(days)


def _parse_until(value: str) -> date:
    match = _UNTIL_PATTERN.match(value)
    if not match:
        raise RecurrenceError(f"Invalid UNTIL value: '{value}'")
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        raise RecurrenceError(f"Invalid UNTIL date: '{value}'")


def parse_rrule(text: str) -> RecurrenceRule:
    """Decode an RRULE string. Raises RecurrenceError when it is invalid."""
    parts = split_rrule(text)

    freq = parts.get('FREQ')
    if not freq:
        raise RecurrenceError("FREQ is required")
    if freq not in FREQUENCIES:
        raise RecurrenceError(f"Unsupported FREQ: {freq}")

    count = _positive_int(parts, 'COUNT')
    until = _parse_until(parts['UNTIL']) if 'UNTIL' in parts else None
    if count is not None and until is not None:
        raise RecurrenceError("COUNT and UNTIL cannot be combined")

    week_start = parts.get('WKST', 'MO')
    if week_start not in WEEKDAY_CODES:
        raise RecurrenceError(f"Invalid WKST value: '{week_start}'")

    return RecurrenceRule(
        freq=freq,
        interval=_positive_int(parts, 'INTERVAL') or 1,
        by_day=_parse_by_day(parts['BYDAY'], freq) if 'BYDAY' in parts else (),
        by_month_day=_parse_by_month_day(parts['BYMONTHDAY']) if 'BYMONTHDAY' in parts else (),
        count=count,
        until=until,
        week_start=week_start,
    )


# =============================================================================
# Encoding
# =============================================================================

def _weekday_sort_key(rule: WeekdayRule):
    return (WEEKDAY_CODES.index(rule.code), rule.ordinal or 0)


def format_rrule(rule: RecurrenceRule) -> str:
    """Encode a rule in canonical order (without the RRULE: prefix)."""
    parts = [f"FREQ={rule.freq}"]
    if rule.interval != 1:
        parts.append(f"INTERVAL={rule.interval}")
    if rule.by_day:
        days = sorted(rule.by_day, key=_weekday_sort_key)
        parts.append("BYDAY=" + ",".join(str(d) for d in days))
    if rule.by_month_day:
        parts.append("BYMONTHDAY=" + ",".join(str(d) for d in rule.by_month_day))
    if rule.count is not None:
        parts.append(f"COUNT={rule.count}")
    if rule.until is not None:
        parts.append(f"UNTIL={rule.until.strftime('%Y%m%d')}")
    if rule.week_start != 'MO':
        parts.append(f"WKST={rule.week_start}")
    return ";".join(parts)


def normalize_rrule(text: Optional[str]) -> Optional[str]:
    """Canonical form of a stored rule; blank means 'does not repeat'."""
    if text is None or not text.strip():
        return None
    return format_rrule(parse_rrule(text))


# =============================================================================
# Human-readable description
# =============================================================================

def _plural(interval: int, singular: str, plural: str) -> str:
    return f"Every {singular}" if interval == 1 else f"Every {interval} {plural}"


def _describe_day(rule: WeekdayRule) -> str:
    name = WEEKDAY_NAMES[rule.code]
    if rule.ordinal:
        return f"the {ORDINAL_NAMES.get(rule.ordinal, f'{rule.ordinal}th')} {name}"
    return name


def describe_rrule(text: Optional[str]) -> str:
    """
    Human-readable summary, e.g. 'Every 2 weeks on Monday, Wednesday'.

    No rule means a one-time event; a rule that cannot be parsed is
    returned unchanged.
    """
    if not text or not text.strip():
        return "One-time event"

    try:
        rule = parse_rrule(text)
    except RecurrenceError:
        return text

    days = ", ".join(_describe_day(d) for d in rule.by_day)

    if rule.freq == 'DAILY':
        summary = _plural(rule.interval, 'day', 'days')
    elif rule.freq == 'WEEKLY':
        summary = _plural(rule.interval, 'week', 'weeks')
        if days:
            summary += f" on {days}"
    elif rule.freq == 'MONTHLY':
        summary = _plural(rule.interval, 'month', 'months')
        if days:
            summary += f" on {days}"
        elif rule.by_month_day:
            summary += " on day " + ", ".join(str(d) for d in rule.by_month_day)
    else:
        summary = _plural(rule.interval, 'year', 'years')

    if rule.count is not None:
        summary += ", 1 time" if rule.count == 1 else f", {rule.count} times"
    if rule.until is not None:
        summary += f", until {rule.until.strftime('%B')} {rule.until.day}, {rule.until.year}"
    return summary


# =============================================================================
# Expansion
# =============================================================================

def _to_dateutil_weekday(rule: WeekdayRule):
    weekday = _DU_WEEKDAYS[rule.code]
    return weekday(rule.ordinal) if rule.ordinal else weekday


def build_rrule(rule: RecurrenceRule, dtstart: date) -> du.rrule:
    kwargs = {
        'freq': _FREQ_MAP[rule.freq],
        'dtstart': datetime.combine(dtstart, time.min),
        'interval': rule.interval,
        'wkst': _DU_WEEKDAYS[rule.week_start],
    }
    if rule.by_day:
        kwargs['byweekday'] = [_to_dateutil_weekday(d) for d in rule.by_day]
    if rule.by_month_day:
        kwargs['bymonthday'] = list(rule.by_month_day)
    if rule.count is not None:
        kwargs['count'] = rule.count
    if rule.until is not None:
        kwargs['until'] = datetime.combine(rule.until, time.min)
    return du.rrule(**kwargs)


def expand(
    rule: RecurrenceRule,
    dtstart: date,
    window_start: date,
    window_end: date,
    limit: int = MAX_OCCURRENCES,
) -> List[date]:
    """
    Occurrence dates of `rule` (anchored at dtstart) that fall inside
    [max(window_start, dtstart), window_end], in order, at most `limit`.

    WEEKLY rules without BYDAY repeat on dtstart's weekday, MONTHLY rules
    without BYDAY/BYMONTHDAY on dtstart's day of month (months lacking
    that day are skipped) and YEARLY rules on dtstart's month and day.
    """
    start = max(window_start, dtstart)
    if window_end < start:
        return []

    dates = []
    for occurrence in build_rrule(rule, dtstart).xafter(datetime.combine(start, time.min), inc=True):
        day = occurrence.date()
        if day > window_end:
            break
        dates.append(day)
        if len(dates) >= limit:
            break
    return dates
