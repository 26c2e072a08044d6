from django.urls import path

from booking.api.views import (
    AppointmentCompleteView,
    AppointmentCreateView,
    AppointmentDetailView,
    AppointmentServiceUpdateView,
    AppointmentStatusView,
    AvailableSlotsView,
    BillDetailView,
    PricingPreviewView,
    ServiceListView,
    StaffListView,
)

urlpatterns = [
    path("services/", ServiceListView.as_view(), name="api-services"),
    path("staff/", StaffListView.as_view(), name="api-staff"),
    path("slots/", AvailableSlotsView.as_view(), name="api-slots"),
    path("appointments/", AppointmentCreateView.as_view(), name="api-appointments"),
    path("appointments/<int:pk>/", AppointmentDetailView.as_view(), name="api-appointment-detail"),
    path("appointments/<int:pk>/status/", AppointmentStatusView.as_view(), name="api-appointment-status"),
    path("appointments/<int:pk>/complete/", AppointmentCompleteView.as_view(), name="api-appointment-complete"),
    path("appointment-services/<int:pk>/", AppointmentServiceUpdateView.as_view(),
         name="api-appointment-service"),
    path("bills/<int:pk>/", BillDetailView.as_view(), name="api-bill-detail"),
    path("pricing/preview/", PricingPreviewView.as_view(), name="api-pricing-preview"),
]
