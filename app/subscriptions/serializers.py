# subscriptions/serializers.py
from rest_framework import serializers

from .models import Subscription, SubscriptionHistory


class SubscriptionHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = SubscriptionHistory
        fields = [
            'event_type', 'period_start', 'period_end', 'sessions_used',
            'rollover_sessions', 'sessions_discarded', 'amount_charged', 'created_at',
        ]
        read_only_fields = fields


class SubscriptionSerializer(serializers.ModelSerializer):
    """
    Package subscription with its current period balance
    """
    psychologist_name = serializers.CharField(source='psychologist.display_name', read_only=True)
    sessions_available = serializers.IntegerField(read_only=True)
    price_per_session = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Subscription
        fields = [
            'subscription_id', 'psychologist', 'psychologist_name', 'client', 'package_type',
            'package_price', 'price_per_session', 'sessions_total', 'sessions_used',
            'rollover_sessions', 'sessions_available', 'current_period_start',
            'current_period_end', 'cancel_at_period_end', 'status', 'cancelled_at', 'created_at',
        ]
        read_only_fields = fields


class SubscriptionDetailSerializer(SubscriptionSerializer):
    history = SubscriptionHistorySerializer(many=True, read_only=True)

    class Meta(SubscriptionSerializer.Meta):
        fields = SubscriptionSerializer.Meta.fields + ['history']
        read_only_fields = fields
