# psychologists/serializers.py
from rest_framework import serializers
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .models import AvailabilityRule, CalendarBlock, PsychologistPricing


class AvailabilityRuleSerializer(serializers.ModelSerializer):
    """
    Availability rules as shown to their owner
    """
    day_name = serializers.CharField(source='get_day_name', read_only=True)
    time_range_display = serializers.CharField(source='get_time_range_display', read_only=True)
    is_active = serializers.BooleanField(read_only=True)

    class Meta:
        model = AvailabilityRule
        fields = [
            'availability_id', 'day_of_week', 'day_name', 'start_time', 'end_time',
            'time_range_display', 'is_exception', 'specific_date', 'is_active',
            'superseded_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class AvailabilityRuleCreateSerializer(serializers.Serializer):
    """
    Weekly rule (day_of_week) or exception rule (specific_date)
    """
    day_of_week = serializers.IntegerField(min_value=0, max_value=6, required=False, allow_null=True)
    specific_date = serializers.DateField(required=False, allow_null=True)
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()

    def validate(self, data):
        """Cross-field validation"""
        if data['start_time'] >= data['end_time']:
            raise serializers.ValidationError({
                'end_time': _("End time must be after start time")
            })

        if data.get('specific_date') is None and data.get('day_of_week') is None:
            raise serializers.ValidationError({
                'day_of_week': _("Give a day of week for weekly rules or a specific date for exceptions")
            })

        if data.get('specific_date') and data['specific_date'] < timezone.now().date():
            raise serializers.ValidationError({
                'specific_date': _("Specific date cannot be in the past")
            })

        return data


class BlockDaySerializer(serializers.Serializer):
    date = serializers.DateField()
    label = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class CalendarBlockSerializer(serializers.ModelSerializer):
    day_name = serializers.CharField(source='get_day_name', read_only=True)

    class Meta:
        model = CalendarBlock
        fields = [
            'block_id', 'block_type', 'is_recurring', 'day_of_week', 'day_name',
            'specific_date', 'start_time', 'end_time', 'label', 'created_at',
        ]
        read_only_fields = ['block_id', 'day_name', 'created_at']

    def validate(self, data):
        if data.get('is_recurring') and data.get('day_of_week') is None:
            raise serializers.ValidationError({
                'day_of_week': _("Recurring blocks need a day of week")
            })
        if not data.get('is_recurring') and not data.get('specific_date'):
            raise serializers.ValidationError({
                'specific_date': _("One-off blocks need a specific date")
            })
        return data


class PricingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PsychologistPricing
        fields = [
            'session_price', 'package_4_price', 'package_8_price',
            'session_duration_minutes', 'cancellation_policy', 'currency', 'updated_at',
        ]
        read_only_fields = ['session_duration_minutes', 'currency', 'updated_at']
