"""
booking_manager.py
------------------
Creates appointments.

- One transaction covers the availability re-check and every row written
  (customer, appointment, one AppointmentService per service, idempotency key).
- Staff rows are locked while checking, so two requests for the same stylist
  run one after the other. The unique/exclusion constraints on appointments
  catch anything that slips past the lock.
- "Any stylist" requests are resolved to a concrete stylist here.
"""
import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import date, time
from typing import List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import DatabaseError, IntegrityError, transaction

from booking import conf
from booking.exceptions import (
    BookingError,
    IdempotencyKeyReused,
    InvariantViolation,
    NoServicesSelected,
    SlotNoLongerAvailable,
    StorageFailure,
    ValidationFailed,
)
from booking.models import Appointment, AppointmentService, Customer, IdempotencyKey, Service, Staff
from booking.phone_utils import is_valid_phone_input, normalize_phone
from booking.services.availability_engine import load_resources, pick_resource
from booking.utils import salon_now, to_minutes

logger = logging.getLogger(__name__)

BOOKABLE_STATUSES = (Appointment.Status.PENDING, Appointment.Status.CONFIRMED)


@dataclass
class BookingRequest:
    service_ids: List[int]
    appointment_date: date
    start_time: time
    end_time: time
    customer_name: str
    customer_phone: str
    staff_id: Optional[int] = None
    customer_email: Optional[str] = None
    notes: str = ''
    status: str = Appointment.Status.PENDING
    idempotency_key: Optional[str] = None

    def fingerprint(self) -> str:
        payload = {
            'service_ids': list(self.service_ids),
            'staff_id': self.staff_id,
            'date': self.appointment_date.isoformat(),
            'start': self.start_time.strftime('%H:%M'),
            'end': self.end_time.strftime('%H:%M'),
            'name': (self.customer_name or '').strip(),
            'phone': normalize_phone(self.customer_phone),
            'email': (self.customer_email or '').strip().lower() or None,
            'status': str(self.status),
        }
        return hashlib.sha256(json.dumps(payload, sort_keys=True).encode('utf-8')).hexdigest()


@dataclass
class BookingResult:
    success: bool
    appointment_id: Optional[int] = None
    staff_id: Optional[int] = None
    error: Optional[str] = None
    message: Optional[str] = None
    idempotent: bool = False

    @classmethod
    def failure(cls, exc: BookingError) -> 'BookingResult':
        return cls(success=False, error=exc.code, message=exc.message)


class BookingManager:
    def __init__(self, using='default', clock=salon_now):
        self.using = using
        self.clock = clock

    def book_appointment(self, request: BookingRequest) -> BookingResult:
        """Reserve the slot and create the appointment, or explain why not.

        Expected failures come back as ``success=False`` with an error code;
        only invariant violations are raised.
        """
        try:
            replay = self._replay(request)
            if replay:
                return replay
            services = self._validate(request)
            return self._reserve(request, services)
        except InvariantViolation:
            raise
        except BookingError as exc:
            logger.warning("Booking rejected (%s): %s", exc.code, exc.message)
            return BookingResult.failure(exc)
        except DatabaseError:
            logger.exception("Storage failure while booking %s %s",
                             request.appointment_date, request.start_time)
            return BookingResult.failure(StorageFailure())

    def _replay(self, request: BookingRequest) -> Optional[BookingResult]:
        if not request.idempotency_key:
            return None
        record = (
            IdempotencyKey.objects.using(self.using)
            .select_related('appointment')
            .filter(key=request.idempotency_key)
            .first()
        )
        if record is None:
            return None
        if record.operation != IdempotencyKey.Operation.BOOK or record.request_hash != request.fingerprint():
            raise IdempotencyKeyReused()
        if record.appointment is None:
            raise InvariantViolation(f'Idempotency key {record.key} has no appointment.')

        logger.info("Replaying booking %s for idempotency key %s", record.appointment_id, record.key)
        return BookingResult(
            success=True,
            appointment_id=record.appointment_id,
            staff_id=record.appointment.staff_id,
            idempotent=True,
        )

    def _validate(self, request: BookingRequest) -> List[Service]:
        if not request.service_ids:
            raise NoServicesSelected()

        found = {
            s.pk: s for s in Service.objects.using(self.using).filter(pk__in=request.service_ids, is_active=True)
        }
        missing = [str(pk) for pk in request.service_ids if pk not in found]
        if missing:
            raise ValidationFailed(f"Unknown or inactive services: {', '.join(missing)}")
        services = [found[pk] for pk in request.service_ids]

        name = (request.customer_name or '').strip()
        if not 2 <= len(name) <= 100:
            raise ValidationFailed('Please enter a valid name (2-100 characters).')
        if not is_valid_phone_input(request.customer_phone):
            raise ValidationFailed('Please enter a valid 10-digit phone number.')
        if request.customer_email:
            try:
                validate_email(request.customer_email)
            except DjangoValidationError:
                raise ValidationFailed('Please enter a valid email address.')

        if request.status not in BOOKABLE_STATUSES:
            raise ValidationFailed('New appointments must be pending or confirmed.')

        start, end = to_minutes(request.start_time), to_minutes(request.end_time)
        if start >= end:
            raise ValidationFailed('End time must be after start time.')
        required = sum(s.duration_minutes for s in services)
        if end - start != required:
            raise ValidationFailed(f'The selected services take {required} minutes.')
        if start < to_minutes(conf.opening_time()) or end > to_minutes(conf.closing_time()):
            raise ValidationFailed('The salon is closed at that time.')

        if not conf.get('ALLOW_PAST_BOOKINGS') and request.appointment_date < self.clock().date():
            raise ValidationFailed('Please select a date today or in the future.')

        if request.staff_id is not None:
            if not Staff.objects.using(self.using).filter(pk=request.staff_id, is_active=True).exists():
                raise ValidationFailed('The selected stylist is not available.')

        return services

    def _reserve(self, request: BookingRequest, services: List[Service]) -> BookingResult:
        start, end = to_minutes(request.start_time), to_minutes(request.end_time)
        try:
            with transaction.atomic(using=self.using):
                try:
                    resources = load_resources(
                        request.appointment_date, request.staff_id, using=self.using, lock=True,
                    )
                except Staff.DoesNotExist:
                    raise SlotNoLongerAvailable()

                chosen = pick_resource(resources, start, end)
                if chosen is None:
                    raise SlotNoLongerAvailable()

                customer = self._get_or_create_customer(request)
                appointment = Appointment.objects.using(self.using).create(
                    customer=customer,
                    service=services[0],
                    staff=chosen.staff,
                    appointment_date=request.appointment_date,
                    start_time=request.start_time,
                    end_time=request.end_time,
                    status=request.status,
                    notes=request.notes or '',
                )
                AppointmentService.objects.using(self.using).bulk_create([
                    AppointmentService(appointment=appointment, service=service, staff=chosen.staff)
                    for service in services
                ])
                if request.idempotency_key:
                    IdempotencyKey.objects.using(self.using).create(
                        key=request.idempotency_key,
                        operation=IdempotencyKey.Operation.BOOK,
                        request_hash=request.fingerprint(),
                        appointment=appointment,
                    )
        except IntegrityError:
            # Lost a race: either a retry with the same key committed first,
            # or another booking took the slot.
            replay = self._replay(request)
            if replay:
                return replay
            raise SlotNoLongerAvailable()

        logger.info(
            "Booked appointment %s: %s %s-%s with %s (%d services)",
            appointment.pk, request.appointment_date, request.start_time.strftime('%H:%M'),
            request.end_time.strftime('%H:%M'), chosen.staff, len(services),
        )
        return BookingResult(success=True, appointment_id=appointment.pk, staff_id=chosen.staff.pk)

    def _get_or_create_customer(self, request: BookingRequest) -> Customer:
        phone = normalize_phone(request.customer_phone)
        email = (request.customer_email or '').strip().lower() or None
        customers = Customer.objects.using(self.using)

        customer = customers.filter(phone=phone).first()
        if customer is None and email:
            customer = customers.filter(email__iexact=email).first()
        if customer is None:
            customer, _ = customers.get_or_create(
                phone=phone,
                defaults={'name': request.customer_name.strip(), 'email': email},
            )
        return customer
