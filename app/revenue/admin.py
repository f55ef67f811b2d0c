# revenue/admin.py
from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import DeferredRevenue, Wallet, WalletTransaction


@admin.register(DeferredRevenue)
class DeferredRevenueAdmin(admin.ModelAdmin):
    list_display = [
        'deferred_id', 'psychologist', 'total_amount', 'deferred_amount', 'recognized_amount',
        'sessions_recognized', 'sessions_total', 'recognized', 'voided_at',
    ]
    list_filter = ['recognized']
    search_fields = ['psychologist__user__email']
    readonly_fields = [f.name for f in DeferredRevenue._meta.fields]

    def has_add_permission(self, request):
        return False


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ['owner_type', 'psychologist', 'currency', 'balance_display']
    list_filter = ['owner_type']

    def balance_display(self, obj):
        return obj.balance
    balance_display.short_description = _('Balance')


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'wallet', 'category', 'amount', 'appointment', 'payment']
    list_filter = ['category', 'wallet__owner_type']
    search_fields = ['description']
    readonly_fields = [f.name for f in WalletTransaction._meta.fields]

    # The ledger is append-only
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
