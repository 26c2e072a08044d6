from booking.services.appointment_manager import AppointmentManager
from booking.services.availability_engine import TimeSlot, get_available_slots
from booking.services.billing_manager import (
    BilledService,
    BillingManager,
    CompletionRequest,
    CompletionResult,
    SequentialBillNumbers,
)
from booking.services.booking_manager import BookingManager, BookingRequest, BookingResult

__all__ = [
    'AppointmentManager',
    'BilledService',
    'BillingManager',
    'BookingManager',
    'BookingRequest',
    'BookingResult',
    'CompletionRequest',
    'CompletionResult',
    'SequentialBillNumbers',
    'TimeSlot',
    'get_available_slots',
]
