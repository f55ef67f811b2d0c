# credits/admin.py
from django.contrib import admin

from .models import ClientCredit


@admin.register(ClientCredit)
class ClientCreditAdmin(admin.ModelAdmin):
    list_display = ['credit_id', 'client', 'psychologist', 'amount', 'status', 'created_at', 'redeemed_at']
    list_filter = ['status']
    search_fields = ['client__user__email', 'psychologist__user__email']
    readonly_fields = ['credit_id', 'source_appointment', 'redeemed_for_appointment', 'redeemed_at', 'created_at']
