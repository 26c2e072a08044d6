"""Errors raised by the booking and billing operations.

Every error carries a stable ``code`` that ends up in operation results and
API responses, so callers can branch on it without parsing messages.
"""


class BookingError(Exception):
    code = 'booking_error'
    default_message = 'Booking operation failed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(BookingError):
    code = 'validation_failed'
    default_message = 'Invalid booking details.'


class NoServicesSelected(ValidationFailed):
    code = 'no_services_selected'
    default_message = 'At least one service is required.'


class ConflictError(BookingError):
    code = 'conflict'
    default_message = 'The request conflicts with the current state.'


class SlotNoLongerAvailable(ConflictError):
    code = 'slot_no_longer_available'
    default_message = 'This time slot is no longer available. Please choose another time.'


class AlreadyCompleted(ConflictError):
    code = 'already_completed'
    default_message = 'This appointment was already completed.'


class AppointmentCancelled(ConflictError):
    code = 'appointment_cancelled'
    default_message = 'This appointment was cancelled.'


class InvalidStatusTransition(ConflictError):
    code = 'invalid_status_transition'
    default_message = 'The appointment cannot move to that status.'


class IdempotencyKeyReused(ConflictError):
    code = 'idempotency_key_reused'
    default_message = 'This idempotency key was already used for a different request.'


class NotFound(BookingError):
    code = 'not_found'
    default_message = 'Not found.'


class AppointmentNotFound(NotFound):
    code = 'appointment_not_found'
    default_message = 'Appointment not found.'


class InvalidServiceSet(BookingError):
    code = 'invalid_service_set'
    default_message = 'There are no services to bill for this appointment.'


class StorageFailure(BookingError):
    code = 'storage_failure'
    default_message = 'Temporary storage problem. Please retry.'


class InvariantViolation(BookingError):
    """Storage is in a state correct code never produces. Never swallowed."""
    code = 'invariant_violation'
    default_message = 'Booking data is inconsistent.'
