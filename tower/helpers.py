# Control Tower Helpers
# Utility functions used across all Control Tower apps

import re
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from .config import ORG_TIMEZONE, WEEKDAYS

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def now_in_org_timezone():
    """Current time in the organisation's timezone"""
    return datetime.now(ZoneInfo(ORG_TIMEZONE))


def next_scheduled_datetime(day_name, hour, now):
    """Next check-in run after today.

    Args:
        day_name: Weekday name, e.g. 'Monday'
        hour: Hour of the day the check-ins go out
        now: Current (timezone-aware) datetime

    Returns:
        Datetime of the next run. If today is the scheduled day the next
        run is a week out.
    """
    target = WEEKDAYS.index(day_name)
    days_until = target - now.weekday()
    if days_until <= 0:
        days_until += 7

    next_date = now + timedelta(days=days_until)
    return next_date.replace(hour=hour, minute=0, second=0, microsecond=0)


def is_schedule_due(schedule, check_in_hour, now):
    """True if scheduled check-ins should go out during this hour"""
    if not schedule.get('enabled'):
        return False
    return WEEKDAYS[now.weekday()] == schedule.get('day') and now.hour == check_in_hour


def is_goal_at_risk(completion, quarter_progress, threshold):
    """A goal is at risk when it is more than `threshold` points behind
    where it should be given how far through the quarter we are.

    Both completion and quarter_progress are percentages.
    """
    return (quarter_progress - completion) > threshold


def is_valid_email(email):
    return isinstance(email, str) and bool(EMAIL_PATTERN.match(email))


def format_date_display(date_str):
    """Format date string to 'D MMM' format (e.g., '5 Jan')

    Args:
        date_str: Date string in various formats

    Returns:
        Formatted string or original if parsing fails
    """
    if not date_str:
        return ''
    for fmt in ['%Y-%m-%d', '%d/%m/%Y', '%d-%m-%Y']:
        try:
            date_obj = datetime.strptime(date_str, fmt)
            return f"{date_obj.day} {date_obj.strftime('%b')}"
        except ValueError:
            continue
    return date_str


def format_long_date(value):
    """'Sunday, January 4, 2026' style, used in Slack messages"""
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"
