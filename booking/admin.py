from django.contrib import admin, messages

from .exceptions import BookingError
from .models import Appointment, AppointmentService, BlockedSlot, Bill, Customer, Service, Staff
from .services import AppointmentManager


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'price', 'compare_at_price', 'duration_minutes', 'is_combo', 'is_active')
    list_filter = ('category', 'is_combo', 'is_featured', 'is_active')
    search_fields = ('name',)
    ordering = ['sort_order', 'name']


class BlockedSlotInline(admin.TabularInline):
    model = BlockedSlot
    extra = 0


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    inlines = [BlockedSlotInline]
    list_display = ('name', 'role', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name',)


@admin.register(BlockedSlot)
class BlockedSlotAdmin(admin.ModelAdmin):
    list_display = ('staff', 'date', 'start_time', 'end_time', 'reason')
    list_filter = ('staff', 'date')
    search_fields = ('staff__name',)


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ('name', 'phone', 'email', 'created_at')
    search_fields = ('name', 'phone', 'email')


class AppointmentServiceInline(admin.TabularInline):
    model = AppointmentService
    extra = 0
    fields = ('service', 'staff', 'is_completed', 'cancellation_reason', 'final_price')
    readonly_fields = fields
    can_delete = False

    # per-service progress changes through the API
    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    inlines = [AppointmentServiceInline]
    list_display = ('customer', 'staff', 'get_service_names', 'appointment_date', 'start_time', 'end_time',
                    'status', 'final_amount')
    list_filter = ('status', 'staff', 'appointment_date')
    search_fields = ('customer__name', 'customer__phone', 'staff__name')
    list_select_related = ('customer', 'staff')
    # Slot, stylist and status only change through the booking, status and
    # billing operations. Only the notes are edited here.
    readonly_fields = ('customer', 'service', 'staff', 'appointment_date', 'start_time', 'end_time', 'status',
                       'final_amount', 'discount_percent', 'payment_mode', 'created_at')
    actions = ['confirm_appointments', 'cancel_appointments']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_service_names(self, obj):
        names = [row.service.name for row in obj.services.select_related('service')]
        if not names and obj.service:
            names = [obj.service.name]
        return ', '.join(names) if names else '-'
    get_service_names.short_description = 'Services'

    def _change_status(self, request, queryset, status):
        manager = AppointmentManager()
        changed = 0
        for appointment in queryset:
            try:
                manager.update_status(appointment.pk, status)
            except BookingError as exc:
                self.message_user(request, f'{appointment}: {exc.message}', messages.ERROR)
            else:
                changed += 1
        if changed:
            self.message_user(request, f'{changed} appointment(s) marked {status}.', messages.SUCCESS)

    @admin.action(description='Confirm selected appointments')
    def confirm_appointments(self, request, queryset):
        self._change_status(request, queryset, Appointment.Status.CONFIRMED)

    @admin.action(description='Cancel selected appointments')
    def cancel_appointments(self, request, queryset):
        self._change_status(request, queryset, Appointment.Status.CANCELLED)


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ('bill_number', 'customer_name', 'bill_date', 'final_amount', 'payment_mode')
    list_filter = ('payment_mode', 'bill_date')
    search_fields = ('bill_number', 'customer_name', 'customer_phone')

    # bills are issued by completing an appointment and never edited afterwards
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
