import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Service',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=120, verbose_name='Name')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('category', models.CharField(
                    choices=[('men', 'Men'), ('women', 'Women'), ('unisex', 'Unisex'), ('combo', 'Combo')],
                    default='unisex', max_length=10,
                )),
                ('price', models.PositiveIntegerField(verbose_name='Price')),
                ('compare_at_price', models.PositiveIntegerField(
                    blank=True, null=True, verbose_name='Original price',
                    help_text='Price before the offer. Leave empty when there is no offer.',
                )),
                ('duration_minutes', models.PositiveIntegerField(
                    default=30, validators=[django.core.validators.MinValueValidator(1)],
                    verbose_name='Duration, min',
                )),
                ('is_combo', models.BooleanField(default=False)),
                ('is_featured', models.BooleanField(default=False)),
                ('is_active', models.BooleanField(default=True)),
                ('sort_order', models.PositiveIntegerField(default=0)),
                ('offer_end_at', models.DateTimeField(blank=True, null=True)),
                ('included_services', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Service',
                'verbose_name_plural': 'Services',
                'ordering': ['sort_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Staff',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('role', models.CharField(default='Stylist', max_length=50, verbose_name='Role')),
                ('working_hours', models.JSONField(blank=True, default=dict)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Staff member',
                'verbose_name_plural': 'Staff',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('phone', models.CharField(max_length=20, unique=True, verbose_name='Phone')),
                ('email', models.EmailField(blank=True, max_length=254, null=True, verbose_name='Email')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Customer',
                'verbose_name_plural': 'Customers',
            },
        ),
        migrations.CreateModel(
            name='BillSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('day', models.DateField(unique=True)),
                ('last_value', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Bill sequence',
            },
        ),
        migrations.CreateModel(
            name='BlockedSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('reason', models.CharField(blank=True, max_length=255, null=True)),
                ('staff', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='blocked_slots', to='booking.staff',
                )),
            ],
            options={
                'verbose_name': 'Blocked slot',
                'verbose_name_plural': 'Blocked slots',
                'ordering': ['date', 'start_time'],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('appointment_date', models.DateField()),
                ('start_time', models.TimeField()),
                ('end_time', models.TimeField()),
                ('status', models.CharField(
                    choices=[
                        ('pending', 'Pending'),
                        ('confirmed', 'Confirmed'),
                        ('completed', 'Completed'),
                        ('cancelled', 'Cancelled'),
                    ],
                    default='pending', max_length=10,
                )),
                ('notes', models.TextField(blank=True)),
                ('final_amount', models.PositiveIntegerField(blank=True, null=True)),
                ('discount_percent', models.PositiveSmallIntegerField(
                    blank=True, null=True, validators=[django.core.validators.MaxValueValidator(100)],
                )),
                ('payment_mode', models.CharField(
                    blank=True, choices=[('cash', 'Cash'), ('upi', 'UPI'), ('card', 'Card')],
                    max_length=8, null=True,
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('customer', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='appointments', to='booking.customer',
                )),
                ('service', models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name='primary_appointments', to='booking.service',
                )),
                ('staff', models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name='appointments', to='booking.staff',
                )),
            ],
            options={
                'verbose_name': 'Appointment',
                'verbose_name_plural': 'Appointments',
                'ordering': ['-appointment_date', 'start_time'],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('status', 'cancelled'), _negated=True),
                        fields=('staff', 'appointment_date', 'start_time'),
                        name='unique_active_appointment_per_slot',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(('end_time__gt', models.F('start_time'))),
                        name='appointment_end_after_start',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='AppointmentService',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_completed', models.BooleanField(default=False)),
                ('cancellation_reason', models.CharField(blank=True, max_length=255, null=True)),
                ('final_price', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('appointment', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='services', to='booking.appointment',
                )),
                ('service', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='appointment_services',
                    to='booking.service',
                )),
                ('staff', models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name='appointment_services', to='booking.staff',
                )),
            ],
            options={
                'verbose_name': 'Appointment service',
                'verbose_name_plural': 'Appointment services',
                'ordering': ['created_at', 'pk'],
            },
        ),
        migrations.CreateModel(
            name='Bill',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('bill_number', models.CharField(max_length=32, unique=True)),
                ('customer_name', models.CharField(max_length=100)),
                ('customer_phone', models.CharField(blank=True, max_length=20, null=True)),
                ('customer_email', models.EmailField(blank=True, max_length=254, null=True)),
                ('bill_date', models.DateField()),
                ('bill_time', models.TimeField()),
                ('services', models.JSONField(default=list)),
                ('subtotal', models.PositiveIntegerField()),
                ('discount_percent', models.PositiveSmallIntegerField(
                    default=0, validators=[django.core.validators.MaxValueValidator(100)],
                )),
                ('discount_amount', models.PositiveIntegerField(default=0)),
                ('final_amount', models.PositiveIntegerField()),
                ('payment_mode', models.CharField(
                    blank=True, choices=[('cash', 'Cash'), ('upi', 'UPI'), ('card', 'Card')],
                    max_length=8, null=True,
                )),
                ('staff_name', models.CharField(blank=True, max_length=100, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('appointment', models.OneToOneField(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name='bill', to='booking.appointment',
                )),
            ],
            options={
                'verbose_name': 'Bill',
                'verbose_name_plural': 'Bills',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='IdempotencyKey',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(max_length=255, unique=True)),
                ('operation', models.CharField(
                    choices=[('book', 'Book appointment'), ('complete', 'Complete appointment')], max_length=10,
                )),
                ('request_hash', models.CharField(max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('appointment', models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.CASCADE,
                    related_name='idempotency_keys', to='booking.appointment',
                )),
                ('bill', models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.CASCADE,
                    related_name='idempotency_keys', to='booking.bill',
                )),
            ],
            options={
                'verbose_name': 'Idempotency key',
            },
        ),
    ]
