from django.db import transaction
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from booking.exceptions import (
    AlreadyCompleted,
    AppointmentCancelled,
    AppointmentNotFound,
    BookingError,
    ConflictError,
    IdempotencyKeyReused,
    InvalidServiceSet,
    InvalidStatusTransition,
    NoServicesSelected,
    NotFound,
    SlotNoLongerAvailable,
    StorageFailure,
    ValidationFailed,
)
from booking.models import Appointment, AppointmentService, Bill, Service, Staff
from booking.api.serializers import (
    AppointmentCreateSerializer,
    AppointmentDetailSerializer,
    AppointmentServiceSerializer,
    AppointmentServiceUpdateSerializer,
    AppointmentSerializer,
    BillSerializer,
    CompletionSerializer,
    PricingPreviewSerializer,
    ServiceSerializer,
    SlotQuerySerializer,
    StaffSerializer,
    StatusUpdateSerializer,
)
from booking.pricing import PricedItem, calculate_bill
from booking.services import AppointmentManager, BillingManager, BookingManager, get_available_slots

HTTP_STATUS_BY_ERROR = {}
for _status, _errors in (
    (status.HTTP_400_BAD_REQUEST, (ValidationFailed, NoServicesSelected, InvalidServiceSet)),
    (status.HTTP_404_NOT_FOUND, (NotFound, AppointmentNotFound)),
    (status.HTTP_409_CONFLICT, (ConflictError, SlotNoLongerAvailable, AlreadyCompleted, AppointmentCancelled,
                                InvalidStatusTransition, IdempotencyKeyReused)),
    (status.HTTP_503_SERVICE_UNAVAILABLE, (StorageFailure,)),
):
    for _error in _errors:
        HTTP_STATUS_BY_ERROR[_error.code] = _status


def error_response(code, detail):
    return Response(
        {"success": False, "error": code, "detail": detail},
        status=HTTP_STATUS_BY_ERROR.get(code, status.HTTP_400_BAD_REQUEST),
    )


def invalid_input(serializer):
    return error_response(ValidationFailed.code, serializer.errors)


def idempotency_key_from(request):
    return request.headers.get("Idempotency-Key") or None


class ServiceListView(generics.ListAPIView):
    permission_classes = [permissions.AllowAny]
    serializer_class = ServiceSerializer

    def get_queryset(self):
        qs = Service.objects.filter(is_active=True)
        category = self.request.query_params.get("category")
        if category:
            qs = qs.filter(category=category)
        return qs.order_by("sort_order", "name")


class StaffListView(generics.ListAPIView):
    permission_classes = [permissions.AllowAny]
    serializer_class = StaffSerializer
    queryset = Staff.objects.filter(is_active=True).order_by("name")


class AvailableSlotsView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        query = SlotQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return invalid_input(query)

        target_date = query.validated_data["date"]
        staff_id = query.validated_data.get("staff")
        duration = query.validated_data["duration"]
        slots = get_available_slots(target_date, staff_id, duration)
        return Response({
            "date": target_date.isoformat(),
            "staff": staff_id,
            "duration": duration,
            "slots": [slot.as_dict() for slot in slots],
        })


class AppointmentCreateView(APIView):
    permission_classes = [permissions.AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "bookings"

    def post(self, request):
        serializer = AppointmentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer)

        booking_request = serializer.to_request(idempotency_key_from(request))
        if not request.user.is_staff:
            # only the front desk books straight into "confirmed"
            booking_request.status = Appointment.Status.PENDING

        result = BookingManager().book_appointment(booking_request)
        if not result.success:
            return error_response(result.error, result.message)

        return Response(
            {
                "success": True,
                "appointment_id": result.appointment_id,
                "staff_id": result.staff_id,
                "idempotent": result.idempotent,
            },
            status=status.HTTP_200_OK if result.idempotent else status.HTTP_201_CREATED,
        )


class AppointmentDetailView(APIView):
    def get(self, request, pk: int):
        try:
            detail = AppointmentManager().get_detail(pk)
        except BookingError as exc:
            return error_response(exc.code, exc.message)
        return Response(AppointmentDetailSerializer(detail).data)


class AppointmentStatusView(APIView):
    def post(self, request, pk: int):
        serializer = StatusUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer)
        try:
            appointment = AppointmentManager().update_status(pk, serializer.validated_data["status"])
        except BookingError as exc:
            return error_response(exc.code, exc.message)
        return Response(AppointmentSerializer(appointment).data)


class AppointmentServiceUpdateView(APIView):
    def patch(self, request, pk: int):
        serializer = AppointmentServiceUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer)

        data = serializer.validated_data
        manager = AppointmentManager()
        try:
            with transaction.atomic():
                if "staff_id" in data:
                    manager.assign_service_staff(pk, data["staff_id"])
                if "final_price" in data:
                    manager.set_service_final_price(pk, data["final_price"])
                if "is_completed" in data:
                    manager.set_service_completion(pk, data["is_completed"], data.get("cancellation_reason"))
        except BookingError as exc:
            return error_response(exc.code, exc.message)

        row = AppointmentService.objects.select_related("service", "staff").get(pk=pk)
        return Response(AppointmentServiceSerializer(row).data)


class AppointmentCompleteView(APIView):
    def post(self, request, pk: int):
        serializer = CompletionSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer)

        result = BillingManager().complete_appointment(serializer.to_request(pk, idempotency_key_from(request)))
        if not result.success:
            return error_response(result.error, result.message)

        return Response(
            {
                "success": True,
                "bill_id": result.bill_id,
                "bill_number": result.bill_number,
                "final_amount": result.final_amount,
                "amount_mismatch": result.amount_mismatch,
                "breakdown": result.breakdown.as_dict() if result.breakdown else None,
                "idempotent": result.idempotent,
            },
            status=status.HTTP_200_OK if result.idempotent else status.HTTP_201_CREATED,
        )


class BillDetailView(generics.RetrieveAPIView):
    queryset = Bill.objects.all()
    serializer_class = BillSerializer


class PricingPreviewView(APIView):
    def post(self, request):
        serializer = PricingPreviewSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer)

        data = serializer.validated_data
        items = [PricedItem(**item) for item in data.get("items", [])]
        service_ids = data.get("service_ids") or []
        if service_ids:
            services = {s.pk: s for s in Service.objects.filter(pk__in=service_ids)}
            missing = [str(pk) for pk in service_ids if pk not in services]
            if missing:
                return error_response(ValidationFailed.code, f"Unknown services: {', '.join(missing)}")
            items.extend(
                PricedItem(price=services[pk].price, compare_at_price=services[pk].compare_at_price,
                           name=services[pk].name)
                for pk in service_ids
            )

        breakdown = calculate_bill(items, data["discount_percent"])
        return Response(breakdown.as_dict())
