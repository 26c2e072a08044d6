"""
availability_engine.py
----------------------
Answers "which start times can still be booked" for a day.

Every staff member is a bookable resource with a working window and a list
of busy intervals (their appointments, appointments that were never given a
stylist, and their blocked slots). Times are handled as minutes since
midnight and intervals are half-open.

The booking transaction calls ``load_resources(..., lock=True)`` to re-run
the same check under row locks right before it writes.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional, Tuple

from django.db import DatabaseError

from booking import conf
from booking.models import Appointment, BlockedSlot, Staff
from booking.utils import from_minutes, format_hhmm, overlaps, salon_now, to_minutes

logger = logging.getLogger(__name__)

Interval = Tuple[int, int]


@dataclass(frozen=True)
class TimeSlot:
    time: str
    available: bool

    def as_dict(self):
        return {'time': self.time, 'available': self.available}


@dataclass
class StaffResource:
    staff: Staff
    window: Optional[Interval]
    busy: List[Interval] = field(default_factory=list)
    booked_count: int = 0

    def is_free(self, start: int, end: int) -> bool:
        if self.window is None:
            return False
        window_start, window_end = self.window
        if start < window_start or end > window_end:
            return False
        return not any(overlaps(start, end, busy_start, busy_end) for busy_start, busy_end in self.busy)


def working_window(staff: Staff, target_date: date, opening: time, closing: time) -> Optional[Interval]:
    """Intersect the salon's hours with the stylist's hours for that weekday.

    None means the stylist is off for the day. Hours that cannot be read
    count as a day off.
    """
    open_minutes, close_minutes = to_minutes(opening), to_minutes(closing)
    try:
        hours = staff.hours_for(target_date)
        if not hours:
            return open_minutes, close_minutes
        if hours.get('isOff'):
            return None
        start = max(open_minutes, to_minutes(conf.parse_time(hours.get('start') or opening)))
        end = min(close_minutes, to_minutes(conf.parse_time(hours.get('end') or closing)))
    except (TypeError, ValueError):
        logger.warning("Unreadable working hours for %s on %s: %r; treating the day as off",
                       staff, target_date, staff.working_hours)
        return None
    if end <= start:
        return None
    return start, end


def load_resources(
    target_date: date,
    staff_id: Optional[int] = None,
    *,
    opening: Optional[time] = None,
    closing: Optional[time] = None,
    using: str = 'default',
    lock: bool = False,
) -> List[StaffResource]:
    """Build the busy picture of ``target_date`` for one stylist or all active ones.

    Raises ``Staff.DoesNotExist`` when ``staff_id`` is not an active stylist.
    With ``lock=True`` the staff rows are locked with SELECT ... FOR UPDATE,
    so it must run inside ``transaction.atomic``.
    """
    opening = opening or conf.opening_time()
    closing = closing or conf.closing_time()

    staff_qs = Staff.objects.using(using).filter(is_active=True)
    if staff_id is not None:
        staff_qs = staff_qs.filter(pk=staff_id)
    if lock:
        staff_qs = staff_qs.select_for_update()
    staff_members = list(staff_qs.order_by('pk'))

    if staff_id is not None and not staff_members:
        raise Staff.DoesNotExist(f'Staff member {staff_id} is not available.')

    appointments = list(
        Appointment.objects.using(using)
        .filter(appointment_date=target_date)
        .exclude(status=Appointment.Status.CANCELLED)
        .values_list('staff_id', 'start_time', 'end_time')
    )
    blocked = list(
        BlockedSlot.objects.using(using)
        .filter(date=target_date, staff__in=[s.pk for s in staff_members])
        .values_list('staff_id', 'start_time', 'end_time')
    )

    # Appointments without a stylist hold every stylist.
    unassigned = [(to_minutes(start), to_minutes(end)) for owner, start, end in appointments if owner is None]

    resources = []
    for staff in staff_members:
        own = [(to_minutes(start), to_minutes(end)) for owner, start, end in appointments if owner == staff.pk]
        held = [(to_minutes(start), to_minutes(end)) for owner, start, end in blocked if owner == staff.pk]
        resources.append(StaffResource(
            staff=staff,
            window=working_window(staff, target_date, opening, closing),
            busy=own + unassigned + held,
            booked_count=len(own),
        ))
    return resources


def pick_resource(resources: List[StaffResource], start: int, end: int) -> Optional[StaffResource]:
    """Least-loaded free stylist for the interval, ties broken by name."""
    free = [r for r in resources if r.is_free(start, end)]
    if not free:
        return None
    return min(free, key=lambda r: (r.booked_count, r.staff.name.lower(), r.staff.pk))


def build_slot_grid(
    resources: List[StaffResource],
    duration_minutes: int,
    opening: time,
    closing: time,
    granularity: int,
    not_before: Optional[int] = None,
) -> List[TimeSlot]:
    slots = []
    start = to_minutes(opening)
    close = to_minutes(closing)
    while start + duration_minutes <= close:
        end = start + duration_minutes
        in_past = not_before is not None and start < not_before
        available = not in_past and any(r.is_free(start, end) for r in resources)
        slots.append(TimeSlot(time=format_hhmm(from_minutes(start)), available=available))
        start += granularity
    return slots


def get_available_slots(
    target_date: date,
    staff_id: Optional[int] = None,
    duration_minutes: int = 30,
    *,
    opening: Optional[time] = None,
    closing: Optional[time] = None,
    granularity: Optional[int] = None,
    now: Optional[datetime] = None,
    using: str = 'default',
) -> List[TimeSlot]:
    """Return every grid start of the day with its availability.

    With ``staff_id=None`` a slot is available when at least one active
    stylist is free for the whole duration. If the busy state cannot be read
    the result is an empty list: nothing is offered when availability is
    unknown.
    """
    if duration_minutes <= 0:
        raise ValueError('Duration must be positive.')

    opening = opening or conf.opening_time()
    closing = closing or conf.closing_time()
    granularity = granularity or conf.slot_interval()

    try:
        resources = load_resources(target_date, staff_id, opening=opening, closing=closing, using=using)
    except Staff.DoesNotExist:
        logger.warning("Slots requested for unknown or inactive staff %s", staff_id)
        return []
    except DatabaseError:
        logger.exception("Could not load busy intervals for %s (staff %s); offering no slots",
                         target_date, staff_id)
        return []

    now = now or salon_now()
    if target_date < now.date():
        not_before = to_minutes(closing) + 1
    elif target_date == now.date():
        not_before = now.hour * 60 + now.minute
    else:
        not_before = None

    return build_slot_grid(resources, duration_minutes, opening, closing, granularity, not_before)
