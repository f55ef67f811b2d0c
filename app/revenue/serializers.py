# revenue/serializers.py
from rest_framework import serializers


class FinancialSummarySerializer(serializers.Serializer):
    """
    Balances for one psychologist
    """
    psychologist_id = serializers.UUIDField(read_only=True)
    deferred_revenue = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    admin_balance = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    psychologist_balance = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    currency = serializers.CharField(read_only=True)


class PlatformSummarySerializer(serializers.Serializer):
    deferred_revenue = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    admin_balance = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    psychologist_balances = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    platform_fees = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    currency = serializers.CharField(read_only=True)
