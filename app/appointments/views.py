# appointments/views.py
from rest_framework import status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes
import logging

from core.responses import domain_error_response, HANDLED_ERRORS
from users.identity import RequestIdentity
from .models import Appointment
from .serializers import (
    AppointmentSerializer,
    BookingCreateSerializer,
    AppointmentCancellationSerializer,
    AvailableSlotsQuerySerializer,
    CancellationResultSerializer,
)
from .services import AvailabilityResolver, AppointmentLedger
from .permissions import IsMarketplaceUser, CanBookAppointments, CanManageSessions

logger = logging.getLogger(__name__)


class AppointmentViewSet(GenericViewSet):
    """
    Booking, cancellation and completion of sessions
    """
    queryset = Appointment.objects.none()
    serializer_class = AppointmentSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_field = 'pk'

    def get_serializer_class(self):
        """Return appropriate serializer based on action"""
        if self.action == 'create':
            return BookingCreateSerializer
        elif self.action == 'cancel':
            return AppointmentCancellationSerializer
        elif self.action == 'available_slots':
            return AvailableSlotsQuerySerializer
        return AppointmentSerializer

    def get_permissions(self):
        """Set permissions based on action"""
        if self.action == 'create':
            permission_classes = [permissions.IsAuthenticated, CanBookAppointments]
        elif self.action in ['complete', 'no_show']:
            permission_classes = [permissions.IsAuthenticated, CanManageSessions]
        else:
            permission_classes = [permissions.IsAuthenticated, IsMarketplaceUser]
        return [permission() for permission in permission_classes]

    def get_identity(self):
        return RequestIdentity.from_request(self.request)

    @extend_schema(
        parameters=[
            OpenApiParameter('status', OpenApiTypes.STR, description='Filter by appointment status'),
        ],
        responses={200: AppointmentSerializer(many=True)},
        description="List the caller's appointments (all appointments for admins)",
        tags=['Appointments']
    )
    def list(self, request):
        appointments = AppointmentLedger.list_appointments(
            self.get_identity(),
            status=request.query_params.get('status')
        )
        serializer = AppointmentSerializer(appointments, many=True)
        return Response({
            'count': len(appointments),
            'appointments': serializer.data
        }, status=status.HTTP_200_OK)

    @extend_schema(
        responses={200: AppointmentSerializer, 404: {'description': 'Appointment not found'}},
        description="Get appointment details",
        tags=['Appointments']
    )
    def retrieve(self, request, pk=None):
        try:
            appointment = AppointmentLedger.get_appointment(self.get_identity(), pk)
        except HANDLED_ERRORS as e:
            return domain_error_response(e)
        return Response(AppointmentSerializer(appointment).data, status=status.HTTP_200_OK)

    @extend_schema(
        request=BookingCreateSerializer,
        responses={
            201: AppointmentSerializer,
            400: {'description': 'Invalid booking data'},
            402: {'description': 'Package exhausted or credit too small'},
            409: {'description': 'Slot taken or inside the notice window; re-fetch availability'},
        },
        description="Book a session (single, package4, package8 or credit)",
        tags=['Appointments']
    )
    def create(self, request):
        """
        POST /api/appointments/
        """
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        identity = self.get_identity()
        client_id = data.get('client_id') if identity.is_admin else identity.user_id
        if client_id is None:
            return Response({
                'client_id': [_("Admins must say which client the booking is for")]
            }, status=status.HTTP_400_BAD_REQUEST)

        try:
            appointment = AppointmentLedger.create_booking(
                identity,
                psychologist_id=data['psychologist_id'],
                client_id=client_id,
                start_time=data['start_time'],
                kind=data['kind'],
                credit_id=data.get('credit_id'),
                modality=data['modality'],
            )
        except HANDLED_ERRORS as e:
            logger.info(f"Booking rejected for {request.user.email}: {type(e).__name__}: {str(e)}")
            return domain_error_response(e)

        logger.info(f"Appointment booked: {appointment.appointment_id} by {request.user.email}")
        return Response({
            'message': _('Appointment booked successfully'),
            'appointment': AppointmentSerializer(appointment).data
        }, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=AppointmentCancellationSerializer,
        responses={200: CancellationResultSerializer},
        description="Cancel an appointment; timely single sessions become a client credit",
        tags=['Appointments']
    )
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = AppointmentLedger.cancel(
                self.get_identity(),
                pk,
                reason=serializer.validated_data['cancellation_reason'],
            )
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'message': _('Appointment cancelled successfully'),
            **CancellationResultSerializer(result).data,
            'appointment': AppointmentSerializer(result['appointment']).data,
        }, status=status.HTTP_200_OK)

    @extend_schema(
        request=None,
        responses={200: AppointmentSerializer},
        description="Mark a confirmed appointment completed and recognize its revenue",
        tags=['Appointments']
    )
    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        try:
            result = AppointmentLedger.complete(self.get_identity(), pk)
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'message': _('Appointment completed'),
            'status': result['status'],
            'revenue_recognized': result['recognized'] or result['already_recognized'],
            'appointment': AppointmentSerializer(result['appointment']).data,
        }, status=status.HTTP_200_OK)

    @extend_schema(
        request=None,
        responses={200: AppointmentSerializer},
        description="Mark an appointment as no-show",
        tags=['Appointments']
    )
    @action(detail=True, methods=['post'], url_path='no-show')
    def no_show(self, request, pk=None):
        try:
            appointment = AppointmentLedger.mark_no_show(self.get_identity(), pk)
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'message': _('Appointment marked as no-show'),
            'appointment': AppointmentSerializer(appointment).data,
        }, status=status.HTTP_200_OK)

    @extend_schema(
        parameters=[
            OpenApiParameter('psychologist_id', OpenApiTypes.UUID, required=True),
            OpenApiParameter('date', OpenApiTypes.DATE, description='Single date'),
            OpenApiParameter('date_from', OpenApiTypes.DATE, description='Range start (inclusive)'),
            OpenApiParameter('date_to', OpenApiTypes.DATE, description='Range end (inclusive)'),
        ],
        description="Bookable slot start times for a psychologist",
        tags=['Appointments']
    )
    @action(detail=False, methods=['get'], url_path='available-slots')
    def available_slots(self, request):
        """
        GET /api/appointments/available-slots/?psychologist_id=&date=
        """
        serializer = self.get_serializer(data=request.query_params)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            if data.get('date'):
                slots = AvailabilityResolver.list_available_slots(data['psychologist_id'], data['date'])
                return Response({
                    'psychologist_id': str(data['psychologist_id']),
                    'date': data['date'].isoformat(),
                    'slots': [slot.isoformat() for slot in slots],
                    'total_slots': len(slots),
                }, status=status.HTTP_200_OK)

            by_date = AvailabilityResolver.list_available_slots_for_range(
                data['psychologist_id'], data['date_from'], data['date_to']
            )
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'psychologist_id': str(data['psychologist_id']),
            'date_from': data['date_from'].isoformat(),
            'date_to': data['date_to'].isoformat(),
            'slots': {day.isoformat(): [slot.isoformat() for slot in slots] for day, slots in by_date.items()},
            'total_slots': sum(len(slots) for slots in by_date.values()),
        }, status=status.HTTP_200_OK)
