"""Salon-level settings with defaults, read from ``settings.SALON_BOOKING``."""
from datetime import time

from django.conf import settings

DEFAULTS = {
    'SALON_NAME': 'Velvet Family Salon',
    'OPENING_TIME': '09:00',
    'CLOSING_TIME': '21:00',
    'SLOT_INTERVAL_MINUTES': 30,
    'BILL_NUMBER_PREFIX': 'VFS',
    'ALLOW_PAST_BOOKINGS': False,
    'DEFAULT_COUNTRY_CODE': '91',
}


def get(name):
    overrides = getattr(settings, 'SALON_BOOKING', None) or {}
    return overrides.get(name, DEFAULTS[name])


def parse_time(value) -> time:
    if isinstance(value, time):
        return value
    hours, minutes = str(value).strip()[:5].split(':')
    return time(int(hours), int(minutes))


def opening_time() -> time:
    return parse_time(get('OPENING_TIME'))


def closing_time() -> time:
    return parse_time(get('CLOSING_TIME'))


def slot_interval() -> int:
    return int(get('SLOT_INTERVAL_MINUTES'))
