# payments/serializers.py
from rest_framework import serializers

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    """
    Payment records as seen by the paying client or the psychologist
    """
    client_email = serializers.EmailField(source='client.user.email', read_only=True)
    psychologist_name = serializers.CharField(source='psychologist.display_name', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'payment_id', 'client', 'client_email', 'psychologist', 'psychologist_name',
            'appointment', 'subscription', 'payment_type', 'payment_status',
            'base_amount', 'platform_fee', 'amount', 'currency',
            'provider_reference', 'failure_reason', 'paid_at', 'created_at',
        ]
        read_only_fields = fields
