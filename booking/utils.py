from datetime import datetime, time

import pytz
from django.conf import settings


def salon_now() -> datetime:
    """Current time in the salon's own timezone."""
    return datetime.now(pytz.timezone(settings.TIME_ZONE))


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def format_hhmm(value: time) -> str:
    return value.strftime('%H:%M')


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap."""
    return start_a < end_b and start_b < end_a
