from datetime import time

from django.test import TestCase

from booking.exceptions import ConflictError, InvalidStatusTransition, NotFound, ValidationFailed
from booking.models import Appointment
from booking.services import AppointmentManager, BillingManager, CompletionRequest
from booking.tests.factories import fixed_clock, make_appointment, make_customer, make_service, make_staff


class AppointmentStatusTests(TestCase):
    def setUp(self):
        self.manager = AppointmentManager()
        self.appointment = make_appointment(make_customer(), make_staff(), make_service())

    def test_confirm_then_cancel(self):
        self.manager.update_status(self.appointment.pk, Appointment.Status.CONFIRMED)
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, Appointment.Status.CONFIRMED)

        self.manager.update_status(self.appointment.pk, Appointment.Status.CANCELLED)
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, Appointment.Status.CANCELLED)

    def test_cancelled_is_final(self):
        self.manager.update_status(self.appointment.pk, Appointment.Status.CANCELLED)

        with self.assertRaises(InvalidStatusTransition):
            self.manager.update_status(self.appointment.pk, Appointment.Status.PENDING)

    def test_confirmed_does_not_go_back_to_pending(self):
        self.manager.update_status(self.appointment.pk, Appointment.Status.CONFIRMED)

        with self.assertRaises(InvalidStatusTransition):
            self.manager.update_status(self.appointment.pk, Appointment.Status.PENDING)
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, Appointment.Status.CONFIRMED)

    def test_completion_only_through_billing(self):
        with self.assertRaises(InvalidStatusTransition):
            self.manager.update_status(self.appointment.pk, Appointment.Status.COMPLETED)

    def test_same_status_is_a_no_op(self):
        appointment = self.manager.update_status(self.appointment.pk, Appointment.Status.PENDING)

        self.assertEqual(appointment.status, Appointment.Status.PENDING)

    def test_missing_appointment(self):
        with self.assertRaises(NotFound):
            self.manager.update_status(123456, Appointment.Status.CONFIRMED)


class AppointmentServiceRowTests(TestCase):
    def setUp(self):
        self.manager = AppointmentManager()
        self.asha = make_staff('Asha')
        self.appointment = make_appointment(make_customer(), self.asha, make_service(price=500))
        self.row = self.appointment.services.get()

    def test_mark_done_and_undo_with_reason(self):
        row = self.manager.set_service_completion(self.row.pk, True)
        self.assertTrue(row.is_completed)

        row = self.manager.set_service_completion(self.row.pk, False, 'Customer left early')

        self.assertFalse(row.is_completed)
        self.assertEqual(row.cancellation_reason, 'Customer left early')

    def test_undo_needs_a_reason(self):
        self.manager.set_service_completion(self.row.pk, True)

        with self.assertRaises(ValidationFailed):
            self.manager.set_service_completion(self.row.pk, False, '   ')

    def test_marking_done_clears_the_reason(self):
        self.manager.set_service_completion(self.row.pk, False, 'Not started')

        row = self.manager.set_service_completion(self.row.pk, True)

        self.assertIsNone(row.cancellation_reason)

    def test_assign_stylist(self):
        bina = make_staff('Bina')

        row = self.manager.assign_service_staff(self.row.pk, bina.pk)
        self.assertEqual(row.staff, bina)

        row = self.manager.assign_service_staff(self.row.pk, None)
        self.assertIsNone(row.staff)

    def test_assign_inactive_stylist(self):
        gone = make_staff('Gone', is_active=False)

        with self.assertRaises(ValidationFailed):
            self.manager.assign_service_staff(self.row.pk, gone.pk)

    def test_price_override(self):
        row = self.manager.set_service_final_price(self.row.pk, 450)

        self.assertEqual(row.get_price(), 450)
        with self.assertRaises(ValidationFailed):
            self.manager.set_service_final_price(self.row.pk, -10)

    def test_rows_of_completed_appointments_are_frozen(self):
        BillingManager(clock=fixed_clock()).complete_appointment(
            CompletionRequest(appointment_id=self.appointment.pk, payment_mode='cash')
        )

        with self.assertRaises(ConflictError):
            self.manager.set_service_final_price(self.row.pk, 100)

    def test_missing_row(self):
        with self.assertRaises(NotFound):
            self.manager.set_service_completion(999999, True)


class AppointmentDetailTests(TestCase):
    def test_detail_collects_everything(self):
        service = make_service('Facial', price=900, duration=60)
        staff = make_staff('Asha')
        customer = make_customer()
        appointment = make_appointment(customer, staff, service, time(11, 0), time(12, 0))

        detail = AppointmentManager().get_detail(appointment.pk)

        self.assertEqual(detail.appointment, appointment)
        self.assertEqual(detail.customer, customer)
        self.assertEqual(detail.staff, staff)
        self.assertEqual([row.service for row in detail.services], [service])
        self.assertIsNone(detail.bill)
        self.assertEqual(appointment.get_total_duration().total_seconds(), 3600)

    def test_missing(self):
        with self.assertRaises(NotFound):
            AppointmentManager().get_detail(424242)
