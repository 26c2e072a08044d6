import threading
from datetime import time

from django.db import connection, connections
from django.test import TransactionTestCase

from booking.models import Appointment, Bill
from booking.services import BillingManager, BookingManager, BookingRequest, CompletionRequest
from booking.tests.factories import BOOKING_DAY, fixed_clock, make_appointment, make_customer, make_service, \
    make_staff
from booking.utils import overlaps, to_minutes


def run_together(target, count):
    """Start ``count`` threads at the same moment and collect what they return."""
    barrier = threading.Barrier(count)
    results = [None] * count

    def worker(index):
        try:
            barrier.wait()
            results[index] = target(index)
        finally:
            connections.close_all()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results


class ThreadedTestCase(TransactionTestCase):
    """Runs on PostgreSQL and on a file-backed sqlite test database."""

    def setUp(self):
        if connection.vendor == 'sqlite' and connection.is_in_memory_db():
            self.skipTest('threads cannot share an in-memory sqlite database')


class ConcurrentBookingTests(ThreadedTestCase):
    def setUp(self):
        super().setUp()
        self.service = make_service(duration=60)
        self.staff = make_staff('Asha')

    def request(self, index, start):
        return BookingRequest(
            service_ids=[self.service.pk],
            staff_id=self.staff.pk,
            appointment_date=BOOKING_DAY,
            start_time=start,
            end_time=time(start.hour + 1, start.minute),
            customer_name=f'Guest {index}',
            customer_phone=f'98765432{index:02d}',
        )

    def book_all(self, starts):
        return run_together(
            lambda i: BookingManager(clock=fixed_clock()).book_appointment(self.request(i, starts[i])),
            len(starts),
        )

    def test_only_one_of_many_overlapping_bookings_wins(self):
        results = self.book_all([time(10, 0), time(10, 30), time(10, 0), time(9, 45), time(10, 15), time(10, 0)])

        winners = [r for r in results if r.success]
        self.assertEqual(len(winners), 1)
        self.assertTrue(all(r.error == 'slot_no_longer_available' for r in results if not r.success))
        self.assertEqual(Appointment.objects.count(), 1)

    def test_non_overlapping_bookings_all_succeed(self):
        results = self.book_all([time(9, 0), time(11, 0), time(13, 0), time(15, 0)])

        self.assertEqual([r.error for r in results], [None] * 4)
        self.assertTrue(all(r.success for r in results))
        self.assertEqual(Appointment.objects.count(), 4)

    def test_each_contested_slot_gets_exactly_one_winner(self):
        # two groups that overlap internally but not with each other
        results = self.book_all([time(10, 0), time(10, 30), time(10, 0), time(14, 0), time(14, 15), time(14, 0)])

        self.assertEqual(sum(1 for r in results if r.success), 2)
        self.assertTrue(all(r.error == 'slot_no_longer_available' for r in results if not r.success))

        booked = [
            (to_minutes(start), to_minutes(end))
            for start, end in Appointment.objects.order_by('start_time').values_list('start_time', 'end_time')
        ]
        self.assertEqual(len(booked), 2)
        self.assertFalse(overlaps(*booked[0], *booked[1]))
        self.assertLess(booked[0][0], 12 * 60)
        self.assertGreaterEqual(booked[1][0], 12 * 60)


class ConcurrentCompletionTests(ThreadedTestCase):
    def test_appointment_is_billed_once(self):
        appointment = make_appointment(make_customer(), make_staff(), make_service())

        results = run_together(
            lambda i: BillingManager(clock=fixed_clock()).complete_appointment(
                CompletionRequest(appointment_id=appointment.pk, payment_mode='cash')
            ),
            5,
        )

        self.assertEqual(sum(1 for r in results if r.success), 1)
        self.assertTrue(all(r.error == 'already_completed' for r in results if not r.success))
        self.assertEqual(Bill.objects.count(), 1)
