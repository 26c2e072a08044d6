from rest_framework import serializers

from booking.models import Appointment, AppointmentService, Bill, Customer, Service, Staff
from booking.phone_utils import format_phone_display
from booking.services import BilledService, BookingRequest, CompletionRequest


class ServiceSerializer(serializers.ModelSerializer):
    savings = serializers.IntegerField(read_only=True)

    class Meta:
        model = Service
        fields = [
            "id",
            "name",
            "description",
            "category",
            "price",
            "compare_at_price",
            "savings",
            "duration_minutes",
            "is_combo",
            "is_featured",
            "offer_end_at",
            "included_services",
        ]


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ["id", "name", "role", "working_hours"]


class CustomerSerializer(serializers.ModelSerializer):
    phone_display = serializers.SerializerMethodField()

    class Meta:
        model = Customer
        fields = ["id", "name", "phone", "phone_display", "email"]

    def get_phone_display(self, obj: Customer) -> str:
        return format_phone_display(obj.phone)


class AppointmentServiceSerializer(serializers.ModelSerializer):
    service_name = serializers.CharField(source="service.name", read_only=True)
    staff_name = serializers.SerializerMethodField()
    price = serializers.SerializerMethodField()

    class Meta:
        model = AppointmentService
        fields = [
            "id",
            "service",
            "service_name",
            "staff",
            "staff_name",
            "is_completed",
            "cancellation_reason",
            "final_price",
            "price",
        ]
        read_only_fields = fields

    def get_staff_name(self, obj: AppointmentService):
        return obj.staff.name if obj.staff else None

    def get_price(self, obj: AppointmentService) -> int:
        return obj.get_price()


class AppointmentSerializer(serializers.ModelSerializer):
    staff_name = serializers.SerializerMethodField()
    service_name = serializers.SerializerMethodField()

    class Meta:
        model = Appointment
        fields = [
            "id",
            "customer",
            "service",
            "service_name",
            "staff",
            "staff_name",
            "appointment_date",
            "start_time",
            "end_time",
            "status",
            "notes",
            "final_amount",
            "discount_percent",
            "payment_mode",
            "created_at",
        ]
        read_only_fields = fields

    def get_staff_name(self, obj: Appointment):
        return obj.staff.name if obj.staff else None

    def get_service_name(self, obj: Appointment):
        return obj.service.name if obj.service else None


class BillSerializer(serializers.ModelSerializer):
    combo_savings = serializers.IntegerField(read_only=True)

    class Meta:
        model = Bill
        fields = [
            "id",
            "bill_number",
            "appointment",
            "customer_name",
            "customer_phone",
            "customer_email",
            "bill_date",
            "bill_time",
            "services",
            "subtotal",
            "combo_savings",
            "discount_percent",
            "discount_amount",
            "final_amount",
            "payment_mode",
            "staff_name",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class AppointmentDetailSerializer(serializers.Serializer):
    appointment = AppointmentSerializer(read_only=True)
    customer = CustomerSerializer(read_only=True)
    staff = StaffSerializer(read_only=True, allow_null=True)
    services = AppointmentServiceSerializer(many=True, read_only=True)
    bill = BillSerializer(read_only=True, allow_null=True)
    total_price = serializers.SerializerMethodField()

    def get_total_price(self, obj) -> int:
        if obj.services:
            return sum(row.get_price() for row in obj.services)
        return obj.appointment.get_total_price()


class SlotQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    staff = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    duration = serializers.IntegerField(required=False, min_value=1)
    services = serializers.CharField(required=False, allow_blank=True)

    def validate_services(self, value):
        try:
            return [int(part) for part in value.split(",") if part.strip()]
        except ValueError:
            raise serializers.ValidationError("Services must be a comma-separated list of ids.")

    def validate(self, attrs):
        service_ids = attrs.get("services") or []
        if service_ids:
            services = {s.pk: s for s in Service.objects.filter(pk__in=service_ids, is_active=True)}
            missing = [str(pk) for pk in service_ids if pk not in services]
            if missing:
                raise serializers.ValidationError({"services": f"Unknown services: {', '.join(missing)}"})
            attrs["duration"] = sum(services[pk].duration_minutes for pk in service_ids)
        if not attrs.get("duration"):
            raise serializers.ValidationError("Give either a duration or a list of services.")
        return attrs


class AppointmentCreateSerializer(serializers.Serializer):
    service_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=True)
    staff_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    appointment_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    customer_name = serializers.CharField(max_length=100, allow_blank=True)
    customer_phone = serializers.CharField(max_length=20)
    customer_email = serializers.EmailField(required=False, allow_null=True, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    status = serializers.ChoiceField(
        choices=[Appointment.Status.PENDING, Appointment.Status.CONFIRMED],
        default=Appointment.Status.PENDING,
    )
    idempotency_key = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)

    def to_request(self, idempotency_key=None) -> BookingRequest:
        data = self.validated_data
        return BookingRequest(
            service_ids=data["service_ids"],
            staff_id=data.get("staff_id"),
            appointment_date=data["appointment_date"],
            start_time=data["start_time"],
            end_time=data["end_time"],
            customer_name=data["customer_name"],
            customer_phone=data["customer_phone"],
            customer_email=data.get("customer_email") or None,
            notes=data.get("notes") or "",
            status=data["status"],
            idempotency_key=idempotency_key or data.get("idempotency_key") or None,
        )


class BilledServiceSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    price = serializers.IntegerField(min_value=0)


class CompletionSerializer(serializers.Serializer):
    payment_mode = serializers.ChoiceField(choices=Appointment.PaymentMode.choices)
    final_amount = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    discount_percent = serializers.IntegerField(required=False, default=0, min_value=0, max_value=100)
    billed_services = BilledServiceSerializer(many=True, required=False)
    staff_name = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=100)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    idempotency_key = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)

    def to_request(self, appointment_id, idempotency_key=None) -> CompletionRequest:
        data = self.validated_data
        return CompletionRequest(
            appointment_id=appointment_id,
            payment_mode=data["payment_mode"],
            final_amount=data.get("final_amount"),
            discount_percent=data.get("discount_percent") or 0,
            billed_services=[BilledService(**item) for item in data.get("billed_services", [])],
            staff_name=data.get("staff_name") or None,
            notes=data.get("notes") or None,
            idempotency_key=idempotency_key or data.get("idempotency_key") or None,
        )


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Appointment.Status.choices)


class AppointmentServiceUpdateSerializer(serializers.Serializer):
    is_completed = serializers.BooleanField(required=False)
    cancellation_reason = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    staff_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    final_price = serializers.IntegerField(required=False, min_value=0)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Nothing to update.")
        if "cancellation_reason" in attrs and "is_completed" not in attrs:
            raise serializers.ValidationError(
                {"cancellation_reason": "Send the reason together with is_completed."}
            )
        return attrs


class PricedItemSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, default="")
    price = serializers.IntegerField(min_value=0)
    compare_at_price = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class PricingPreviewSerializer(serializers.Serializer):
    service_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    items = PricedItemSerializer(many=True, required=False)
    discount_percent = serializers.IntegerField(required=False, default=0, min_value=0, max_value=100)

    def validate(self, attrs):
        if not attrs.get("service_ids") and not attrs.get("items"):
            raise serializers.ValidationError("Give either service ids or priced items.")
        return attrs
