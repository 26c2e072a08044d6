"""
billing_manager.py
------------------
Finishes appointments and issues bills.

Completing an appointment and creating its bill happen in one transaction
on the locked appointment row: either both are stored or neither is.
Amounts are always recomputed from the catalog with ``booking.pricing``;
figures sent by the caller are only compared against the result.
"""
import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from django.db import DatabaseError, IntegrityError, transaction

from booking import conf
from booking.exceptions import (
    AlreadyCompleted,
    AppointmentCancelled,
    AppointmentNotFound,
    BookingError,
    IdempotencyKeyReused,
    InvalidServiceSet,
    InvariantViolation,
    StorageFailure,
    ValidationFailed,
)
from booking.models import Appointment, AppointmentService, Bill, BillSequence, IdempotencyKey
from booking.pricing import PriceBreakdown, PricedItem, calculate_bill
from booking.utils import salon_now

logger = logging.getLogger(__name__)


@dataclass
class BilledService:
    name: str
    price: int


@dataclass
class CompletionRequest:
    appointment_id: int
    payment_mode: str
    final_amount: Optional[int] = None
    discount_percent: int = 0
    billed_services: List[BilledService] = field(default_factory=list)
    staff_name: Optional[str] = None
    notes: Optional[str] = None
    idempotency_key: Optional[str] = None

    def fingerprint(self) -> str:
        payload = {
            'appointment_id': self.appointment_id,
            'payment_mode': self.payment_mode,
            'final_amount': self.final_amount,
            'discount_percent': self.discount_percent,
            'billed_services': [[s.name, s.price] for s in self.billed_services],
            'staff_name': self.staff_name,
            'notes': self.notes,
        }
        return hashlib.sha256(json.dumps(payload, sort_keys=True).encode('utf-8')).hexdigest()


@dataclass
class CompletionResult:
    success: bool
    bill_id: Optional[int] = None
    bill_number: Optional[str] = None
    final_amount: Optional[int] = None
    breakdown: Optional[PriceBreakdown] = None
    amount_mismatch: bool = False
    error: Optional[str] = None
    message: Optional[str] = None
    idempotent: bool = False

    @classmethod
    def failure(cls, exc: BookingError) -> 'CompletionResult':
        return cls(success=False, error=exc.code, message=exc.message)

    @classmethod
    def for_bill(cls, bill: Bill, **kwargs) -> 'CompletionResult':
        return cls(success=True, bill_id=bill.pk, bill_number=bill.bill_number,
                   final_amount=bill.final_amount, **kwargs)


class SequentialBillNumbers:
    """``PREFIX-YYYYMMDD-NNNN``, numbered per day from a locked counter row."""

    def __init__(self, prefix=None):
        self.prefix = prefix

    def __call__(self, day: date, using: str = 'default') -> str:
        prefix = self.prefix or conf.get('BILL_NUMBER_PREFIX')
        sequence, _ = BillSequence.objects.using(using).select_for_update().get_or_create(day=day)
        sequence.last_value += 1
        sequence.save(update_fields=['last_value'])
        return f'{prefix}-{day:%Y%m%d}-{sequence.last_value:04d}'


class BillingManager:
    def __init__(self, using='default', clock=salon_now, bill_numbers=None):
        self.using = using
        self.clock = clock
        self.bill_numbers = bill_numbers or SequentialBillNumbers()

    def complete_appointment(self, request: CompletionRequest) -> CompletionResult:
        try:
            replay = self._replay(request)
            if replay:
                return replay
            self._validate(request)
            return self._complete(request)
        except InvariantViolation:
            raise
        except BookingError as exc:
            logger.warning("Completion of appointment %s rejected (%s): %s",
                           request.appointment_id, exc.code, exc.message)
            return CompletionResult.failure(exc)
        except DatabaseError:
            logger.exception("Storage failure while completing appointment %s", request.appointment_id)
            return CompletionResult.failure(StorageFailure())

    def _replay(self, request: CompletionRequest) -> Optional[CompletionResult]:
        if not request.idempotency_key:
            return None
        record = (
            IdempotencyKey.objects.using(self.using)
            .select_related('bill')
            .filter(key=request.idempotency_key)
            .first()
        )
        if record is None:
            return None
        if record.operation != IdempotencyKey.Operation.COMPLETE or record.request_hash != request.fingerprint():
            raise IdempotencyKeyReused()
        if record.bill is None:
            raise InvariantViolation(f'Idempotency key {record.key} has no bill.')

        logger.info("Replaying bill %s for idempotency key %s", record.bill.bill_number, record.key)
        return CompletionResult.for_bill(record.bill, idempotent=True)

    def _validate(self, request: CompletionRequest):
        if request.payment_mode not in Appointment.PaymentMode.values:
            raise ValidationFailed(f'Unknown payment mode: {request.payment_mode}')
        if not 0 <= (request.discount_percent or 0) <= 100:
            raise ValidationFailed('Discount must be between 0 and 100 percent.')
        if request.final_amount is not None and request.final_amount < 0:
            raise ValidationFailed('Final amount cannot be negative.')

    def _complete(self, request: CompletionRequest) -> CompletionResult:
        try:
            with transaction.atomic(using=self.using):
                appointment = self._lock_appointment(request.appointment_id)
                rows = list(
                    appointment.services.using(self.using)
                    .filter(is_completed=True)
                    .select_related('service')
                    .order_by('created_at', 'pk')
                )
                items = self._billable_items(appointment, rows)
                breakdown = calculate_bill(items, request.discount_percent)
                mismatch = self._compare_with_caller(request, breakdown)

                appointment.status = Appointment.Status.COMPLETED
                appointment.final_amount = breakdown.final_amount
                appointment.discount_percent = request.discount_percent or 0
                appointment.payment_mode = request.payment_mode
                appointment.save(update_fields=['status', 'final_amount', 'discount_percent', 'payment_mode'])

                for row in rows:
                    row.final_price = row.get_price()
                if rows:
                    AppointmentService.objects.using(self.using).bulk_update(rows, ['final_price'])

                bill = self._issue_bill(appointment, items, breakdown, request)
                if request.idempotency_key:
                    IdempotencyKey.objects.using(self.using).create(
                        key=request.idempotency_key,
                        operation=IdempotencyKey.Operation.COMPLETE,
                        request_hash=request.fingerprint(),
                        appointment=appointment,
                        bill=bill,
                    )
        except IntegrityError:
            replay = self._replay(request)
            if replay:
                return replay
            raise StorageFailure()

        logger.info("Completed appointment %s: bill %s, final amount %s (%s)",
                    appointment.pk, bill.bill_number, bill.final_amount, bill.payment_mode)
        return CompletionResult.for_bill(bill, breakdown=breakdown, amount_mismatch=mismatch)

    def _lock_appointment(self, appointment_id) -> Appointment:
        try:
            appointment = Appointment.objects.using(self.using).select_for_update().get(pk=appointment_id)
        except Appointment.DoesNotExist:
            raise AppointmentNotFound()

        has_bill = Bill.objects.using(self.using).filter(appointment=appointment).exists()
        if appointment.status == Appointment.Status.COMPLETED:
            if not has_bill:
                raise InvariantViolation(f'Appointment {appointment.pk} is completed but has no bill.')
            raise AlreadyCompleted()
        if has_bill:
            raise InvariantViolation(f'Appointment {appointment.pk} has a bill but is {appointment.status}.')
        if appointment.status == Appointment.Status.CANCELLED:
            raise AppointmentCancelled()
        return appointment

    def _billable_items(self, appointment: Appointment, rows) -> List[PricedItem]:
        if rows:
            return [
                PricedItem(price=row.get_price(), compare_at_price=row.service.compare_at_price,
                           name=row.service.name)
                for row in rows
            ]
        # no per-service progress recorded: bill the primary service
        if appointment.service_id is None:
            raise InvalidServiceSet()
        service = appointment.service
        return [PricedItem(price=service.price, compare_at_price=service.compare_at_price, name=service.name)]

    def _compare_with_caller(self, request: CompletionRequest, breakdown: PriceBreakdown) -> bool:
        mismatch = False
        if request.final_amount is not None and request.final_amount != breakdown.final_amount:
            mismatch = True
        if request.billed_services and sum(s.price for s in request.billed_services) != breakdown.actual_total:
            mismatch = True
        if mismatch:
            logger.warning(
                "Appointment %s: caller total %s / services %s differ from computed final %s / services %s; "
                "storing computed amounts",
                request.appointment_id, request.final_amount,
                sum(s.price for s in request.billed_services), breakdown.final_amount, breakdown.actual_total,
            )
        return mismatch

    def _issue_bill(self, appointment, items, breakdown, request) -> Bill:
        now = self.clock()
        customer = appointment.customer
        staff_name = request.staff_name or (appointment.staff.name if appointment.staff_id else None)
        return Bill.objects.using(self.using).create(
            bill_number=self.bill_numbers(now.date(), self.using),
            appointment=appointment,
            customer_name=customer.name,
            customer_phone=customer.phone,
            customer_email=customer.email,
            bill_date=now.date(),
            bill_time=now.time().replace(microsecond=0, tzinfo=None),
            services=[{'name': item.name, 'price': item.price} for item in items],
            subtotal=breakdown.subtotal,
            discount_percent=request.discount_percent or 0,
            discount_amount=breakdown.discount_amount,
            final_amount=breakdown.final_amount,
            payment_mode=request.payment_mode,
            staff_name=staff_name,
            notes=request.notes,
        )
