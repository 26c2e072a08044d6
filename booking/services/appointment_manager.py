"""
appointment_manager.py
----------------------
Back-office changes to an appointment before it is completed: confirming,
cancelling, and per-service progress (done / not done, stylist, price).

Completion itself belongs to BillingManager.
"""
import logging
from typing import Optional

from django.db import transaction

from booking.exceptions import (
    ConflictError,
    InvalidStatusTransition,
    NotFound,
    ValidationFailed,
)
from booking.models import Appointment, AppointmentDetail, AppointmentService, Staff

logger = logging.getLogger(__name__)

Status = Appointment.Status

ALLOWED_TRANSITIONS = {
    Status.PENDING: {Status.CONFIRMED, Status.CANCELLED},
    Status.CONFIRMED: {Status.CANCELLED},
    Status.COMPLETED: set(),
    Status.CANCELLED: set(),
}


class AppointmentManager:
    def __init__(self, using='default'):
        self.using = using

    def get_detail(self, appointment_id) -> AppointmentDetail:
        try:
            appointment = (
                Appointment.objects.using(self.using)
                .select_related('customer', 'staff', 'service')
                .get(pk=appointment_id)
            )
        except Appointment.DoesNotExist:
            raise NotFound('Appointment not found.')
        return appointment.get_detail()

    def update_status(self, appointment_id, status) -> Appointment:
        if status == Status.COMPLETED:
            raise InvalidStatusTransition('Appointments are completed through billing.')
        with transaction.atomic(using=self.using):
            return self._update_status(appointment_id, status)

    def _update_status(self, appointment_id, status) -> Appointment:
        try:
            appointment = Appointment.objects.using(self.using).select_for_update().get(pk=appointment_id)
        except Appointment.DoesNotExist:
            raise NotFound('Appointment not found.')

        if status == appointment.status:
            return appointment
        if status not in ALLOWED_TRANSITIONS.get(appointment.status, set()):
            raise InvalidStatusTransition(
                f'Cannot change a {appointment.status} appointment to {status}.'
            )

        appointment.status = status
        appointment.save(update_fields=['status'])
        logger.info("Appointment %s is now %s", appointment.pk, status)
        return appointment

    def set_service_completion(self, row_id, is_completed: bool, reason: Optional[str] = None) -> AppointmentService:
        """Mark one service of an appointment as done or not done.

        Undoing a service that was marked done needs a reason. Marking a
        service done clears any earlier reason.
        """
        reason = (reason or '').strip() or None
        with transaction.atomic(using=self.using):
            row = self._lock_row(row_id)
            if is_completed:
                row.is_completed = True
                row.cancellation_reason = None
            else:
                if row.is_completed and not reason:
                    raise ValidationFailed('Please give a reason for marking this service as not done.')
                row.is_completed = False
                if reason:
                    row.cancellation_reason = reason
            row.save(update_fields=['is_completed', 'cancellation_reason'])
        return row

    def assign_service_staff(self, row_id, staff_id) -> AppointmentService:
        staff = None
        if staff_id is not None:
            staff = Staff.objects.using(self.using).filter(pk=staff_id, is_active=True).first()
            if staff is None:
                raise ValidationFailed('The selected stylist is not available.')
        with transaction.atomic(using=self.using):
            row = self._lock_row(row_id)
            row.staff = staff
            row.save(update_fields=['staff'])
        return row

    def set_service_final_price(self, row_id, price: int) -> AppointmentService:
        if price is None or price < 0:
            raise ValidationFailed('Price cannot be negative.')
        with transaction.atomic(using=self.using):
            row = self._lock_row(row_id)
            row.final_price = price
            row.save(update_fields=['final_price'])
        return row

    def _lock_row(self, row_id) -> AppointmentService:
        try:
            row = (
                AppointmentService.objects.using(self.using)
                .select_for_update()
                .get(pk=row_id)
            )
        except AppointmentService.DoesNotExist:
            raise NotFound('Appointment service not found.')

        status = Appointment.objects.using(self.using).values_list('status', flat=True).get(pk=row.appointment_id)
        if status in (Status.COMPLETED, Status.CANCELLED):
            raise ConflictError(f'This appointment is {status}; its services can no longer change.')
        return row
