# credits/serializers.py
from rest_framework import serializers

from .models import ClientCredit


class ClientCreditSerializer(serializers.ModelSerializer):
    psychologist_name = serializers.CharField(source='psychologist.display_name', read_only=True)

    class Meta:
        model = ClientCredit
        fields = [
            'credit_id', 'psychologist', 'psychologist_name', 'amount', 'reason', 'status',
            'source_appointment', 'redeemed_for_appointment', 'redeemed_at', 'created_at',
        ]
        read_only_fields = fields
