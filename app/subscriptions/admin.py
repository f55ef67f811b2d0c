# subscriptions/admin.py
from django.contrib import admin

from .models import Subscription, SubscriptionHistory


class SubscriptionHistoryInline(admin.TabularInline):
    model = SubscriptionHistory
    extra = 0
    can_delete = False
    readonly_fields = [
        'event_type', 'period_start', 'period_end', 'sessions_used',
        'rollover_sessions', 'sessions_discarded', 'amount_charged', 'created_at',
    ]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = [
        'subscription_id', 'client', 'psychologist', 'package_type', 'status',
        'sessions_used', 'sessions_total', 'rollover_sessions', 'current_period_end', 'cancel_at_period_end',
    ]
    list_filter = ['status', 'package_type', 'cancel_at_period_end']
    search_fields = ['client__user__email', 'psychologist__user__email']
    readonly_fields = ['subscription_id', 'created_at', 'updated_at', 'cancelled_at']
    inlines = [SubscriptionHistoryInline]

    def has_delete_permission(self, request, obj=None):
        # Subscriptions are cancelled, never deleted
        return False
