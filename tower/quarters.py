# Control Tower Quarters
# Quarter boundaries and progress through the current quarter

import calendar
from copy import deepcopy
from datetime import date, datetime, timedelta

from .config import DEFAULT_QUARTERS

QUARTER_LABELS = ['Q1', 'Q2', 'Q3', 'Q4']

# Non-leap year used when comparing boundaries without a real year
_REFERENCE_YEAR = 2023


# ===================
# CONFIG PARSING
# ===================

def _parse_month_day(value):
    """Return (month, day) from a {'month', 'day'} mapping, or None if invalid."""
    if not isinstance(value, dict):
        return None
    try:
        month = int(value['month'])
        day = int(value['day'])
    except (KeyError, TypeError, ValueError):
        return None
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    return month, day


def _crosses_year(end):
    # 'nextYear' is the key older config files were written with
    return bool(end.get('crossesYearBoundary', end.get('nextYear', False)))


def _parse_boundary(raw):
    if not isinstance(raw, dict):
        return None
    start = _parse_month_day(raw.get('start'))
    end = _parse_month_day(raw.get('end'))
    if start is None or end is None:
        return None
    return {
        'start': {'month': start[0], 'day': start[1]},
        'end': {'month': end[0], 'day': end[1], 'crossesYearBoundary': _crosses_year(raw['end'])}
    }


def normalize_quarterly_config(config):
    """Return a complete {label: boundary} mapping for Q1-Q4.

    Accepts either {'quarters': {...}} or the bare label mapping. Any quarter
    that is missing or malformed is replaced by its default boundary, so the
    result always has all four quarters.
    """
    quarters = {}
    if isinstance(config, dict):
        quarters = config.get('quarters', config)
        if not isinstance(quarters, dict):
            quarters = {}

    normalized = {}
    for label in QUARTER_LABELS:
        boundary = _parse_boundary(quarters.get(label))
        if boundary is None:
            boundary = deepcopy(DEFAULT_QUARTERS[label])
        normalized[label] = boundary
    return normalized


# ===================
# RESOLUTION
# ===================

def _make_date(year, month, day):
    """Build a date, clamping the day to the month's length (Feb 29 -> Feb 28)."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _progress(today, start_date, end_date):
    total_days = (end_date - start_date).days
    if total_days <= 0:
        return 1.0
    elapsed = (today - start_date).days
    return max(0.0, min(1.0, elapsed / total_days))


def _quarter_span(boundary, today, current=None):
    """Return (start_date, end_date) if today falls in the boundary, else None.

    `current` is the (month, day) to match on; it defaults to today's.
    """
    start = (boundary['start']['month'], boundary['start']['day'])
    end = (boundary['end']['month'], boundary['end']['day'])
    current = current or (today.month, today.day)

    if boundary['end']['crossesYearBoundary']:
        if current >= start:
            return _make_date(today.year, *start), _make_date(today.year + 1, *end)
        if current <= end:
            return _make_date(today.year - 1, *start), _make_date(today.year, *end)
        return None

    if start <= current <= end:
        return _make_date(today.year, *start), _make_date(today.year, *end)
    return None


def _match_quarter(quarters, today, current=None):
    """First (label, span) whose boundary contains today, in Q1..Q4 order"""
    for label in QUARTER_LABELS:
        span = _quarter_span(quarters[label], today, current)
        if span is not None:
            return label, span
    return None


def resolve_quarter(now, config=None):
    """Work out which quarter `now` falls in and how far through it we are.

    Args:
        now: date or datetime (time of day is ignored)
        config: quarterly config document; missing quarters use defaults

    Returns:
        dict with quarter label, progress (0-1), startDate and endDate
    """
    today = now.date() if isinstance(now, datetime) else now
    quarters = normalize_quarterly_config(config)

    match = _match_quarter(quarters, today)
    if match is None and (today.month, today.day) == (2, 29):
        # Leap day belongs to a quarter that ends on Feb 28
        match = _match_quarter(quarters, today, (2, 28))
        if match is not None:
            label, (start_date, end_date) = match
            match = label, (start_date, max(end_date, today))

    if match is not None:
        label, (start_date, end_date) = match
        return {
            'quarter': label,
            'progress': _progress(today, start_date, end_date),
            'startDate': start_date,
            'endDate': end_date
        }

    # Only reachable when the configured quarters leave a gap
    print(f"No quarter matched {today.isoformat()}, falling back to Q1")
    fallback = DEFAULT_QUARTERS['Q1']
    return {
        'quarter': 'Q1',
        'progress': 0.0,
        'startDate': _make_date(today.year, fallback['start']['month'], fallback['start']['day']),
        'endDate': _make_date(today.year, fallback['end']['month'], fallback['end']['day'])
    }


def quarter_summary(resolved):
    """JSON-ready view of a resolved quarter, progress as a percentage"""
    return {
        'quarter': resolved['quarter'],
        'quarterProgress': round(resolved['progress'] * 100, 1),
        'quarterStart': resolved['startDate'].isoformat(),
        'quarterEnd': resolved['endDate'].isoformat()
    }


def check_quarter_tiling(config):
    """List gaps and overlaps between consecutive quarters.

    Each quarter's end must be the day before the next quarter's start
    (Q4 wraps round to Q1). Returns an empty list when the quarters tile
    the year.
    """
    quarters = normalize_quarterly_config(config)
    problems = []

    for index, label in enumerate(QUARTER_LABELS):
        following = QUARTER_LABELS[(index + 1) % len(QUARTER_LABELS)]
        end = quarters[label]['end']
        start = quarters[following]['start']

        day_after_end = _make_date(_REFERENCE_YEAR, end['month'], end['day']) + timedelta(days=1)
        next_start = _make_date(_REFERENCE_YEAR, start['month'], start['day'])

        # Month/day only, so Q4 -> Q1 compares across the year end
        if (day_after_end.month, day_after_end.day) != (next_start.month, next_start.day):
            problems.append(
                f"{label} ends {end['month']}/{end['day']} but {following} starts "
                f"{start['month']}/{start['day']}"
            )

    return problems


def next_quarter(label):
    """Q1 -> Q2 -> Q3 -> Q4 -> Q1. Unknown labels map to Q1."""
    if label not in QUARTER_LABELS:
        return 'Q1'
    return QUARTER_LABELS[(QUARTER_LABELS.index(label) + 1) % len(QUARTER_LABELS)]


def next_quarter_start(label, today, config=None):
    """First start date of the given quarter that falls after today."""
    quarters = normalize_quarterly_config(config)
    boundary = quarters.get(label, quarters['Q1'])
    start = boundary['start']

    start_date = _make_date(today.year, start['month'], start['day'])
    if start_date <= today:
        start_date = _make_date(today.year + 1, start['month'], start['day'])
    return start_date
