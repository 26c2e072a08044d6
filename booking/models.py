# booking/models.py
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from booking.conf import parse_time

WEEKDAY_NAMES = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']


class Service(models.Model):
    class Category(models.TextChoices):
        MEN = 'men', 'Men'
        WOMEN = 'women', 'Women'
        UNISEX = 'unisex', 'Unisex'
        COMBO = 'combo', 'Combo'

    name = models.CharField('Name', max_length=120)
    description = models.TextField('Description', blank=True)
    category = models.CharField(max_length=10, choices=Category.choices, default=Category.UNISEX)
    price = models.PositiveIntegerField('Price')
    compare_at_price = models.PositiveIntegerField(
        'Original price', null=True, blank=True,
        help_text='Price before the offer. Leave empty when there is no offer.',
    )
    duration_minutes = models.PositiveIntegerField('Duration, min', default=30, validators=[MinValueValidator(1)])
    is_combo = models.BooleanField(default=False)
    is_featured = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)
    offer_end_at = models.DateTimeField(null=True, blank=True)
    # [{id, name, price, duration}] as they were when the combo was put together
    included_services = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['sort_order', 'name']
        verbose_name = 'Service'
        verbose_name_plural = 'Services'

    def __str__(self):
        return self.name

    def clean(self):
        if self.compare_at_price is not None and self.compare_at_price < self.price:
            raise ValidationError('Original price cannot be lower than the price.')

    @property
    def savings(self):
        if self.compare_at_price and self.compare_at_price > self.price:
            return self.compare_at_price - self.price
        return 0


class Staff(models.Model):
    name = models.CharField('Name', max_length=100)
    role = models.CharField('Role', max_length=50, default='Stylist')
    # {"monday": {"start": "09:00", "end": "21:00", "isOff": false}, ...}
    working_hours = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        verbose_name = 'Staff member'
        verbose_name_plural = 'Staff'

    def __str__(self):
        return self.name

    def hours_for(self, day):
        """Return the working-hours entry for ``day`` or None when not configured.

        Raises ValueError when the stored hours are not shaped as
        ``{weekday: {start, end, isOff}}``.
        """
        hours = self.working_hours or {}
        if not isinstance(hours, dict):
            raise ValueError('Working hours must map weekday names to hours.')
        entry = hours.get(WEEKDAY_NAMES[day.weekday()])
        if entry is not None and not isinstance(entry, dict):
            raise ValueError(f'Hours for {WEEKDAY_NAMES[day.weekday()]} must be an object.')
        return entry

    def clean(self):
        hours = self.working_hours or {}
        if not isinstance(hours, dict):
            raise ValidationError({'working_hours': 'Working hours must map weekday names to hours.'})
        for day, entry in hours.items():
            if day not in WEEKDAY_NAMES:
                raise ValidationError({'working_hours': f'Unknown weekday "{day}".'})
            if not isinstance(entry, dict):
                raise ValidationError({'working_hours': f'Hours for {day} must be an object.'})
            if entry.get('isOff'):
                continue
            try:
                start = parse_time(entry['start']) if entry.get('start') else None
                end = parse_time(entry['end']) if entry.get('end') else None
            except (TypeError, ValueError):
                raise ValidationError({'working_hours': f'Use HH:MM times for {day}.'})
            if start and end and end <= start:
                raise ValidationError({'working_hours': f'On {day} the end time must be after the start time.'})


class Customer(models.Model):
    name = models.CharField('Name', max_length=100)
    phone = models.CharField('Phone', max_length=20, unique=True)
    email = models.EmailField('Email', null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Customer'
        verbose_name_plural = 'Customers'

    def __str__(self):
        return f"{self.name} ({self.phone})"


class BlockedSlot(models.Model):
    staff = models.ForeignKey(Staff, related_name='blocked_slots', on_delete=models.CASCADE)
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    reason = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        ordering = ['date', 'start_time']
        verbose_name = 'Blocked slot'
        verbose_name_plural = 'Blocked slots'

    def clean(self):
        if self.end_time <= self.start_time:
            raise ValidationError('End time must be after start time.')

    def __str__(self):
        return f'{self.staff} blocked {self.date} {self.start_time}-{self.end_time}'


class Appointment(models.Model):
    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        CONFIRMED = 'confirmed', 'Confirmed'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    class PaymentMode(models.TextChoices):
        CASH = 'cash', 'Cash'
        UPI = 'upi', 'UPI'
        CARD = 'card', 'Card'

    customer = models.ForeignKey(Customer, related_name='appointments', on_delete=models.PROTECT)
    # first selected service, kept for appointments without per-service rows
    service = models.ForeignKey(
        Service, related_name='primary_appointments', on_delete=models.PROTECT, null=True, blank=True,
    )
    staff = models.ForeignKey(
        Staff, related_name='appointments', on_delete=models.PROTECT, null=True, blank=True,
    )
    appointment_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    notes = models.TextField(blank=True)
    final_amount = models.PositiveIntegerField(null=True, blank=True)
    discount_percent = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MaxValueValidator(100)],
    )
    payment_mode = models.CharField(max_length=8, choices=PaymentMode.choices, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-appointment_date', 'start_time']
        verbose_name = 'Appointment'
        verbose_name_plural = 'Appointments'
        constraints = [
            models.UniqueConstraint(
                fields=['staff', 'appointment_date', 'start_time'],
                condition=~Q(status='cancelled'),
                name='unique_active_appointment_per_slot',
            ),
            models.CheckConstraint(
                condition=Q(end_time__gt=models.F('start_time')),
                name='appointment_end_after_start',
            ),
        ]

    def __str__(self):
        staff = self.staff or 'any stylist'
        return f'{self.customer.name} ➜ {staff} ({self.appointment_date} {self.start_time:%H:%M})'

    def clean(self):
        if self.end_time and self.start_time and self.end_time <= self.start_time:
            raise ValidationError('End time must be after start time.')

    @property
    def duration(self) -> timedelta:
        return (
            datetime.combine(self.appointment_date, self.end_time)
            - datetime.combine(self.appointment_date, self.start_time)
        )

    def get_total_price(self):
        rows = list(self.services.select_related('service'))
        if not rows:
            return self.service.price if self.service else 0
        return sum(row.get_price() for row in rows)

    def get_total_duration(self):
        rows = list(self.services.select_related('service'))
        if not rows:
            return timedelta(minutes=self.service.duration_minutes) if self.service else timedelta()
        return sum((timedelta(minutes=row.service.duration_minutes) for row in rows), timedelta())

    def get_detail(self):
        services = list(self.services.select_related('service', 'staff').order_by('created_at', 'pk'))
        bill = Bill.objects.filter(appointment=self).first()
        return AppointmentDetail(appointment=self, services=services, staff=self.staff,
                                 customer=self.customer, bill=bill)


class AppointmentService(models.Model):
    appointment = models.ForeignKey(Appointment, related_name='services', on_delete=models.CASCADE)
    service = models.ForeignKey(Service, related_name='appointment_services', on_delete=models.PROTECT)
    staff = models.ForeignKey(
        Staff, related_name='appointment_services', on_delete=models.SET_NULL, null=True, blank=True,
    )
    is_completed = models.BooleanField(default=False)
    cancellation_reason = models.CharField(max_length=255, null=True, blank=True)
    final_price = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'pk']
        verbose_name = 'Appointment service'
        verbose_name_plural = 'Appointment services'

    def get_price(self):
        if self.final_price is not None:
            return self.final_price
        return self.service.price

    def __str__(self):
        return self.service.name


class Bill(models.Model):
    bill_number = models.CharField(max_length=32, unique=True)
    appointment = models.OneToOneField(
        Appointment, related_name='bill', on_delete=models.SET_NULL, null=True, blank=True,
    )
    customer_name = models.CharField(max_length=100)
    customer_phone = models.CharField(max_length=20, null=True, blank=True)
    customer_email = models.EmailField(null=True, blank=True)
    bill_date = models.DateField()
    bill_time = models.TimeField()
    # [{name, price}] frozen at billing time
    services = models.JSONField(default=list)
    subtotal = models.PositiveIntegerField()
    discount_percent = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(100)])
    discount_amount = models.PositiveIntegerField(default=0)
    final_amount = models.PositiveIntegerField()
    payment_mode = models.CharField(max_length=8, choices=Appointment.PaymentMode.choices, null=True, blank=True)
    staff_name = models.CharField(max_length=100, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Bill'
        verbose_name_plural = 'Bills'

    def __str__(self):
        return f'{self.bill_number} ({self.customer_name})'

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValidationError('Bills cannot be changed once issued.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError('Bills cannot be deleted.')

    @property
    def combo_savings(self):
        return self.subtotal - sum(item['price'] for item in self.services)


class BillSequence(models.Model):
    day = models.DateField(unique=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Bill sequence'

    def __str__(self):
        return f'{self.day}: {self.last_value}'


class IdempotencyKey(models.Model):
    class Operation(models.TextChoices):
        BOOK = 'book', 'Book appointment'
        COMPLETE = 'complete', 'Complete appointment'

    key = models.CharField(max_length=255, unique=True)
    operation = models.CharField(max_length=10, choices=Operation.choices)
    request_hash = models.CharField(max_length=64)
    appointment = models.ForeignKey(
        Appointment, related_name='idempotency_keys', on_delete=models.CASCADE, null=True, blank=True,
    )
    bill = models.ForeignKey(Bill, related_name='idempotency_keys', on_delete=models.CASCADE, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Idempotency key'

    def __str__(self):
        return f'{self.operation}:{self.key}'


@dataclass
class AppointmentDetail:
    appointment: Appointment
    customer: Customer
    staff: Optional[Staff]
    services: List[AppointmentService] = field(default_factory=list)
    bill: Optional[Bill] = None
