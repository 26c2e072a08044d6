from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import OperationalError
from django.test import TestCase
from rest_framework.test import APIClient
from rest_framework.throttling import ScopedRateThrottle

from booking.models import Appointment, AppointmentService, Bill
from booking.tests.factories import BOOKING_DAY, make_service, make_staff

User = get_user_model()


class ApiTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.haircut = make_service('Haircut', price=500, duration=30, compare_at_price=800)
        self.beard = make_service('Beard trim', price=300, duration=30)
        self.asha = make_staff('Asha')
        self.admin = User.objects.create_user('frontdesk', password='secret', is_staff=True)

    def booking_payload(self, **overrides):
        payload = {
            'service_ids': [self.haircut.pk],
            'staff_id': self.asha.pk,
            'appointment_date': BOOKING_DAY.isoformat(),
            'start_time': '10:00',
            'end_time': '10:30',
            'customer_name': 'Ravi Kumar',
            'customer_phone': '+91 98765 43210',
        }
        payload.update(overrides)
        return payload

    def book(self, **overrides):
        return self.client.post('/api/appointments/', self.booking_payload(**overrides), format='json')

    def as_admin(self):
        self.client.force_authenticate(self.admin)


class CatalogApiTests(ApiTestCase):
    def test_services_lists_active_only(self):
        make_service('Old perm', is_active=False)

        response = self.client.get('/api/services/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([s['name'] for s in response.json()], ['Beard trim', 'Haircut'])
        haircut = next(s for s in response.json() if s['name'] == 'Haircut')
        self.assertEqual(haircut['savings'], 300)

    def test_staff_list(self):
        make_staff('Gone', is_active=False)

        response = self.client.get('/api/staff/')

        self.assertEqual([s['name'] for s in response.json()], ['Asha'])


class SlotsApiTests(ApiTestCase):
    def test_slots_by_duration(self):
        response = self.client.get('/api/slots/', {'date': BOOKING_DAY.isoformat(), 'duration': 30,
                                                   'staff': self.asha.pk})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['duration'], 30)
        self.assertEqual(body['slots'][0], {'time': '09:00', 'available': True})

    def test_slots_by_services(self):
        response = self.client.get('/api/slots/', {
            'date': BOOKING_DAY.isoformat(), 'services': f'{self.haircut.pk},{self.beard.pk}',
        })

        self.assertEqual(response.json()['duration'], 60)
        self.assertEqual(response.json()['slots'][-1]['time'], '20:00')

    def test_booked_slot_shows_unavailable(self):
        self.book()

        response = self.client.get('/api/slots/', {'date': BOOKING_DAY.isoformat(), 'duration': 30})

        slots = {slot['time']: slot['available'] for slot in response.json()['slots']}
        self.assertFalse(slots['10:00'])

    def test_needs_duration_or_services(self):
        response = self.client.get('/api/slots/', {'date': BOOKING_DAY.isoformat()})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'validation_failed')
        self.assertFalse(response.json()['success'])

    def test_bad_date(self):
        response = self.client.get('/api/slots/', {'date': '07-01-2030', 'duration': 30})

        self.assertEqual(response.status_code, 400)


class BookingApiTests(ApiTestCase):
    def test_public_booking(self):
        response = self.book()

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['staff_id'], self.asha.pk)
        self.assertEqual(Appointment.objects.get(pk=body['appointment_id']).status, 'pending')

    def test_public_callers_cannot_confirm(self):
        response = self.book(status='confirmed')

        self.assertEqual(Appointment.objects.get(pk=response.json()['appointment_id']).status, 'pending')

    def test_front_desk_can_confirm(self):
        self.as_admin()

        response = self.book(status='confirmed')

        self.assertEqual(Appointment.objects.get(pk=response.json()['appointment_id']).status, 'confirmed')

    def test_idempotency_key_header_replays(self):
        first = self.client.post('/api/appointments/', self.booking_payload(), format='json',
                                 HTTP_IDEMPOTENCY_KEY='abc-1')
        second = self.client.post('/api/appointments/', self.booking_payload(), format='json',
                                  HTTP_IDEMPOTENCY_KEY='abc-1')

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 200)
        self.assertTrue(second.json()['idempotent'])
        self.assertEqual(second.json()['appointment_id'], first.json()['appointment_id'])

    def test_idempotency_key_in_body(self):
        self.book(idempotency_key='body-1')

        response = self.book(idempotency_key='body-1')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(Appointment.objects.count(), 1)

    def test_reused_key_is_a_conflict(self):
        self.book(idempotency_key='body-1')

        response = self.book(idempotency_key='body-1', start_time='12:00', end_time='12:30')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'idempotency_key_reused')

    def test_taken_slot_is_a_conflict(self):
        self.book()

        response = self.book(customer_phone='9123456789')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'slot_no_longer_available')

    def test_no_services(self):
        response = self.book(service_ids=[])

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'no_services_selected')

    def test_malformed_payload(self):
        payload = self.booking_payload()
        del payload['customer_phone']

        response = self.client.post('/api/appointments/', payload, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('customer_phone', response.json()['detail'])

    def test_storage_failure_is_503(self):
        with mock.patch.object(AppointmentService.objects, 'using', side_effect=OperationalError('timeout')):
            response = self.book()

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()['error'], 'storage_failure')

    def test_booking_is_throttled(self):
        with mock.patch.object(ScopedRateThrottle, 'THROTTLE_RATES', {'bookings': '2/minute'}):
            self.book(start_time='10:00', end_time='10:30')
            self.book(start_time='11:00', end_time='11:30')
            response = self.book(start_time='12:00', end_time='12:30')

        self.assertEqual(response.status_code, 429)


class BackOfficeApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.appointment_id = self.book(service_ids=[self.haircut.pk, self.beard.pk],
                                        end_time='11:00').json()['appointment_id']

    def test_back_office_needs_staff_user(self):
        response = self.client.get(f'/api/appointments/{self.appointment_id}/')

        self.assertIn(response.status_code, (401, 403))

    def test_detail(self):
        self.as_admin()

        response = self.client.get(f'/api/appointments/{self.appointment_id}/')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['appointment']['id'], self.appointment_id)
        self.assertEqual(body['customer']['phone_display'], '987-654-3210')
        self.assertEqual(body['staff']['name'], 'Asha')
        self.assertEqual([row['service_name'] for row in body['services']], ['Haircut', 'Beard trim'])
        self.assertEqual(body['total_price'], 800)
        self.assertIsNone(body['bill'])

    def test_detail_not_found(self):
        self.as_admin()

        response = self.client.get('/api/appointments/99999/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], 'not_found')

    def test_status_update(self):
        self.as_admin()

        response = self.client.post(f'/api/appointments/{self.appointment_id}/status/',
                                    {'status': 'confirmed'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'confirmed')

    def test_status_update_to_completed_is_refused(self):
        self.as_admin()

        response = self.client.post(f'/api/appointments/{self.appointment_id}/status/',
                                    {'status': 'completed'}, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'invalid_status_transition')

    def test_service_row_update(self):
        self.as_admin()
        row = AppointmentService.objects.filter(appointment_id=self.appointment_id).first()
        bina = make_staff('Bina')

        response = self.client.patch(f'/api/appointment-services/{row.pk}/',
                                     {'is_completed': True, 'staff_id': bina.pk, 'final_price': 450},
                                     format='json')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['is_completed'])
        self.assertEqual(body['staff_name'], 'Bina')
        self.assertEqual(body['price'], 450)

    def test_reason_alone_is_rejected(self):
        self.as_admin()
        row = AppointmentService.objects.filter(appointment_id=self.appointment_id).first()

        response = self.client.patch(f'/api/appointment-services/{row.pk}/',
                                     {'cancellation_reason': 'Customer left early'}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'validation_failed')
        row.refresh_from_db()
        self.assertIsNone(row.cancellation_reason)

    def test_service_row_undo_without_reason(self):
        self.as_admin()
        row = AppointmentService.objects.filter(appointment_id=self.appointment_id).first()
        self.client.patch(f'/api/appointment-services/{row.pk}/', {'is_completed': True}, format='json')

        response = self.client.patch(f'/api/appointment-services/{row.pk}/',
                                     {'is_completed': False, 'final_price': 10}, format='json')

        self.assertEqual(response.status_code, 400)
        row.refresh_from_db()
        self.assertTrue(row.is_completed)
        self.assertIsNone(row.final_price)

    def test_complete_and_fetch_bill(self):
        self.as_admin()
        AppointmentService.objects.filter(appointment_id=self.appointment_id).update(is_completed=True)

        response = self.client.post(f'/api/appointments/{self.appointment_id}/complete/',
                                    {'payment_mode': 'upi', 'discount_percent': 10, 'final_amount': 720},
                                    format='json')

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertFalse(body['amount_mismatch'])
        self.assertEqual(body['final_amount'], 720)
        self.assertEqual(body['breakdown']['combo_savings'], 300)

        bill = self.client.get(f"/api/bills/{body['bill_id']}/")
        self.assertEqual(bill.status_code, 200)
        self.assertEqual(bill.json()['bill_number'], body['bill_number'])
        self.assertEqual(bill.json()['subtotal'], 1100)

    def test_second_completion_is_a_conflict(self):
        self.as_admin()
        url = f'/api/appointments/{self.appointment_id}/complete/'
        self.client.post(url, {'payment_mode': 'cash'}, format='json')

        response = self.client.post(url, {'payment_mode': 'cash'}, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'already_completed')
        self.assertEqual(Bill.objects.count(), 1)

    def test_completion_replay(self):
        self.as_admin()
        url = f'/api/appointments/{self.appointment_id}/complete/'
        first = self.client.post(url, {'payment_mode': 'cash'}, format='json', HTTP_IDEMPOTENCY_KEY='done-1')

        second = self.client.post(url, {'payment_mode': 'cash'}, format='json', HTTP_IDEMPOTENCY_KEY='done-1')

        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()['bill_id'], first.json()['bill_id'])

    def test_complete_missing_appointment(self):
        self.as_admin()

        response = self.client.post('/api/appointments/99999/complete/', {'payment_mode': 'cash'}, format='json')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], 'appointment_not_found')

    def test_pricing_preview(self):
        self.as_admin()

        response = self.client.post('/api/pricing/preview/', {
            'service_ids': [self.haircut.pk],
            'items': [{'name': 'Custom', 'price': 300}],
            'discount_percent': '10',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['subtotal'], 1100)
        self.assertEqual(response.json()['final_amount'], 720)

    def test_pricing_preview_rejects_bad_discount(self):
        self.as_admin()

        response = self.client.post('/api/pricing/preview/', {'service_ids': [self.haircut.pk],
                                                               'discount_percent': 150}, format='json')

        self.assertEqual(response.status_code, 400)

    def test_pricing_preview_takes_whole_percent_like_completion(self):
        self.as_admin()

        response = self.client.post('/api/pricing/preview/', {'service_ids': [self.haircut.pk],
                                                               'discount_percent': '12.5'}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('discount_percent', response.json()['detail'])
