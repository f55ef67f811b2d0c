# payments/admin.py
from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['payment_id', 'client', 'psychologist', 'payment_type', 'payment_status', 'amount', 'currency', 'created_at']
    list_filter = ['payment_status', 'payment_type']
    search_fields = ['client__user__email', 'psychologist__user__email', 'provider_reference']
    readonly_fields = ['payment_id', 'base_amount', 'platform_fee', 'amount', 'provider_reference', 'paid_at', 'created_at']
