# appointments/serializers.py
from rest_framework import serializers
from django.utils.translation import gettext_lazy as _

from .models import Appointment


class AppointmentSerializer(serializers.ModelSerializer):
    """
    Read serializer for appointments
    """
    psychologist_id = serializers.UUIDField(source='psychologist.user_id', read_only=True)
    psychologist_name = serializers.CharField(source='psychologist.display_name', read_only=True)
    client_id = serializers.UUIDField(source='client.user_id', read_only=True)
    client_name = serializers.CharField(source='client.display_name', read_only=True)
    cancelled_by_email = serializers.EmailField(source='cancelled_by.email', read_only=True, default=None)

    class Meta:
        model = Appointment
        fields = [
            'appointment_id',
            'psychologist_id',
            'psychologist_name',
            'client_id',
            'client_name',
            'subscription',
            'booking_kind',
            'start_time',
            'end_time',
            'status',
            'modality',
            'cancelled_by_email',
            'cancellation_reason',
            'cancelled_at',
            'completed_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    """
    Input for createBooking
    """
    KIND_CHOICES = [
        ('single', _('Single session')),
        ('package4', _('4-session package')),
        ('package8', _('8-session package')),
        ('credit', _('Client credit')),
    ]

    psychologist_id = serializers.UUIDField()
    start_time = serializers.DateTimeField(
        help_text=_("Slot start as returned by available-slots, with timezone offset")
    )
    kind = serializers.ChoiceField(choices=KIND_CHOICES, default='single')
    credit_id = serializers.UUIDField(required=False, allow_null=True)
    modality = serializers.ChoiceField(choices=Appointment.MODALITY_CHOICES, default='online')
    client_id = serializers.UUIDField(
        required=False,
        help_text=_("Admins only: book on behalf of this client")
    )

    def validate(self, attrs):
        if attrs.get('kind') == 'credit' and not attrs.get('credit_id'):
            raise serializers.ValidationError({
                'credit_id': _("A credit is required for credit bookings")
            })
        return attrs


class AppointmentCancellationSerializer(serializers.Serializer):
    """
    Serializer for appointment cancellation
    """
    cancellation_reason = serializers.CharField(
        max_length=1000,
        required=False,
        allow_blank=True,
        default='',
        help_text=_("Reason for cancelling the appointment")
    )


class AvailableSlotsQuerySerializer(serializers.Serializer):
    """
    Query parameters for available-slots: a single ``date`` or a ``date_from``/``date_to`` range
    """
    psychologist_id = serializers.UUIDField()
    date = serializers.DateField(required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        if attrs.get('date'):
            return attrs
        if not attrs.get('date_from') or not attrs.get('date_to'):
            raise serializers.ValidationError(
                _("Provide either date or both date_from and date_to")
            )
        if attrs['date_to'] < attrs['date_from']:
            raise serializers.ValidationError({
                'date_to': _("End date must be on or after start date")
            })
        return attrs


class CancellationResultSerializer(serializers.Serializer):
    status = serializers.CharField()
    credit_issued = serializers.SerializerMethodField()
    session_restored = serializers.BooleanField()

    def get_credit_issued(self, obj):
        credit = obj.get('credit_issued')
        if credit is None:
            return None
        return {
            'credit_id': str(credit.credit_id),
            'amount': str(credit.amount),
        }
