# appointments/admin.py
from django.contrib import admin

from .models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['appointment_id', 'psychologist', 'client', 'start_time', 'booking_kind', 'status', 'modality']
    list_filter = ['status', 'booking_kind', 'modality']
    search_fields = ['psychologist__user__email', 'client__user__email']
    date_hierarchy = 'start_time'
    readonly_fields = ['appointment_id', 'created_at', 'updated_at', 'cancelled_at', 'cancelled_by', 'completed_at']
