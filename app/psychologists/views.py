# psychologists/views.py
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
from .models import AvailabilityRule, CalendarBlock
from .serializers import (
    AvailabilityRuleSerializer,
    AvailabilityRuleCreateSerializer,
    BlockDaySerializer,
    CalendarBlockSerializer,
    PricingSerializer,
)
from .services import (
    ProfileService,
    PricingService,
    AvailabilityManagementService,
    PsychologistNotFoundError,
)
from .permissions import CanManagePsychologistCalendar

logger = logging.getLogger(__name__)


class PsychologistCalendarMixin:
    """
    Resolves the psychologist a calendar request acts on.

    Psychologists always act on their own profile; admins name one with
    ``psychologist_id`` in the query string or body.
    """

    def get_identity(self):
        return RequestIdentity.from_request(self.request)

    def get_current_psychologist(self):
        user = self.request.user
        if user.is_admin or user.is_staff:
            psychologist_id = self.request.query_params.get('psychologist_id') or self.request.data.get('psychologist_id')
            if not psychologist_id:
                raise PsychologistNotFoundError(_("Admins must pass psychologist_id"))
            return ProfileService.get_psychologist_by_id(psychologist_id)
        return ProfileService.get_psychologist_by_user_or_raise(user)


class PsychologistAvailabilityViewSet(PsychologistCalendarMixin, GenericViewSet):
    """
    ViewSet for availability rules (weekly and exception)
    """
    queryset = AvailabilityRule.objects.select_related('psychologist__user').all()
    serializer_class = AvailabilityRuleSerializer
    permission_classes = [permissions.IsAuthenticated, CanManagePsychologistCalendar]

    def get_serializer_class(self):
        if self.action in ['create', 'supersede']:
            return AvailabilityRuleCreateSerializer
        elif self.action == 'block_day':
            return BlockDaySerializer
        return AvailabilityRuleSerializer

    @extend_schema(
        parameters=[OpenApiParameter('psychologist_id', OpenApiTypes.UUID, description='Admin only')],
        responses={200: AvailabilityRuleSerializer(many=True)},
        description="Active availability rules of the current psychologist",
        tags=['Psychologist Availability']
    )
    def list(self, request):
        """
        GET /api/psychologists/availability/
        """
        try:
            psychologist = self.get_current_psychologist()
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        rules = AvailabilityManagementService.get_active_rules(psychologist)
        return Response({
            'weekly_rules': AvailabilityRuleSerializer([r for r in rules if not r.is_exception], many=True).data,
            'exception_rules': AvailabilityRuleSerializer([r for r in rules if r.is_exception], many=True).data,
            'total_rules': len(rules)
        }, status=status.HTTP_200_OK)

    @extend_schema(
        request=AvailabilityRuleCreateSerializer,
        responses={
            201: AvailabilityRuleSerializer,
            400: {'description': 'Invalid or overlapping availability rule'}
        },
        description="Create a weekly rule, or an exception rule for a specific date",
        tags=['Psychologist Availability']
    )
    def create(self, request):
        """
        POST /api/psychologists/availability/
        """
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            psychologist = self.get_current_psychologist()
            rule = AvailabilityManagementService.create_rule(
                self.get_identity(), psychologist, **serializer.validated_data
            )
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        logger.info(f"Availability rule created by: {request.user.email}")
        return Response({
            'message': _('Availability rule created successfully'),
            'availability': AvailabilityRuleSerializer(rule).data
        }, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=AvailabilityRuleCreateSerializer,
        responses={200: AvailabilityRuleSerializer},
        description="Supersede a rule. With start_time and end_time a replacement rule is created in its place.",
        tags=['Psychologist Availability']
    )
    @action(detail=True, methods=['post'])
    def supersede(self, request, pk=None):
        """
        POST /api/psychologists/availability/{id}/supersede/
        """
        try:
            rule = AvailabilityRule.objects.select_related('psychologist__user').get(
                pk=pk, superseded_at__isnull=True
            )
        except (AvailabilityRule.DoesNotExist, ValueError):
            return Response({
                'error': _('Availability rule not found')
            }, status=status.HTTP_404_NOT_FOUND)

        self.check_object_permissions(request, rule)

        start_time = request.data.get('start_time')
        end_time = request.data.get('end_time')
        try:
            if start_time and end_time:
                serializer = self.get_serializer(data={
                    'day_of_week': rule.day_of_week,
                    'specific_date': rule.specific_date if rule.is_exception else None,
                    'start_time': start_time,
                    'end_time': end_time,
                })
                if not serializer.is_valid():
                    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
                replacement = AvailabilityManagementService.replace_rule(
                    self.get_identity(), rule,
                    serializer.validated_data['start_time'],
                    serializer.validated_data['end_time'],
                )
                return Response({
                    'message': _('Availability rule replaced'),
                    'availability': AvailabilityRuleSerializer(replacement).data
                }, status=status.HTTP_200_OK)

            AvailabilityManagementService.supersede_rule(self.get_identity(), rule)
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'message': _('Availability rule superseded'),
            'availability': AvailabilityRuleSerializer(rule).data
        }, status=status.HTTP_200_OK)

    @extend_schema(
        request=BlockDaySerializer,
        responses={201: CalendarBlockSerializer},
        description="Take a whole day off",
        tags=['Psychologist Availability']
    )
    @action(detail=False, methods=['post'], url_path='block-day')
    def block_day(self, request):
        """
        POST /api/psychologists/availability/block-day/
        """
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            psychologist = self.get_current_psychologist()
            block = AvailabilityManagementService.block_day(
                self.get_identity(), psychologist,
                serializer.validated_data['date'],
                label=serializer.validated_data['label'],
            )
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'message': _('Day blocked'),
            'block': CalendarBlockSerializer(block).data
        }, status=status.HTTP_201_CREATED)


class CalendarBlockViewSet(PsychologistCalendarMixin, GenericViewSet):
    """
    ViewSet for busy time coming from outside the marketplace
    """
    queryset = CalendarBlock.objects.select_related('psychologist__user').all()
    serializer_class = CalendarBlockSerializer
    permission_classes = [permissions.IsAuthenticated, CanManagePsychologistCalendar]

    @extend_schema(
        responses={200: CalendarBlockSerializer(many=True)},
        description="Calendar blocks of the current psychologist",
        tags=['Psychologist Availability']
    )
    def list(self, request):
        try:
            psychologist = self.get_current_psychologist()
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        blocks = AvailabilityManagementService.get_blocks(psychologist)
        return Response({
            'blocks': CalendarBlockSerializer(blocks, many=True).data,
            'total_blocks': len(blocks)
        }, status=status.HTTP_200_OK)

    @extend_schema(
        request=CalendarBlockSerializer,
        responses={201: CalendarBlockSerializer},
        description="Create a recurring or one-off calendar block",
        tags=['Psychologist Availability']
    )
    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            psychologist = self.get_current_psychologist()
            block = AvailabilityManagementService.create_block(
                self.get_identity(), psychologist, serializer.validated_data
            )
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'message': _('Calendar block created successfully'),
            'block': CalendarBlockSerializer(block).data
        }, status=status.HTTP_201_CREATED)

    @extend_schema(
        responses={204: None, 404: {'description': 'Calendar block not found'}},
        description="Delete a calendar block",
        tags=['Psychologist Availability']
    )
    def destroy(self, request, pk=None):
        try:
            block = CalendarBlock.objects.select_related('psychologist__user').get(pk=pk)
        except (CalendarBlock.DoesNotExist, ValueError):
            return Response({
                'error': _('Calendar block not found')
            }, status=status.HTTP_404_NOT_FOUND)

        self.check_object_permissions(request, block)

        try:
            AvailabilityManagementService.delete_block(self.get_identity(), block)
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response(status=status.HTTP_204_NO_CONTENT)


class PsychologistPricingViewSet(PsychologistCalendarMixin, GenericViewSet):
    """
    Session and package prices of the current psychologist
    """
    serializer_class = PricingSerializer
    permission_classes = [permissions.IsAuthenticated, CanManagePsychologistCalendar]

    @extend_schema(
        responses={200: PricingSerializer, 404: {'description': 'Pricing not configured'}},
        description="Get current prices and the session price cap",
        tags=['Psychologist Pricing']
    )
    def list(self, request):
        """
        GET /api/psychologists/pricing/
        """
        try:
            psychologist = self.get_current_psychologist()
            cap = PricingService.get_price_cap(ProfileService.get_experience_years(psychologist.user.id))
            pricing = PricingService.get_pricing(psychologist)
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'pricing': PricingSerializer(pricing).data,
            'session_price_cap': str(cap),
        }, status=status.HTTP_200_OK)

    @extend_schema(
        request=PricingSerializer,
        responses={200: PricingSerializer, 400: {'description': 'Price above the experience cap'}},
        description="Create or replace session and package prices",
        tags=['Psychologist Pricing']
    )
    @action(detail=False, methods=['put'], url_path='update')
    def set_pricing(self, request):
        """
        PUT /api/psychologists/pricing/update/
        """
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            psychologist = self.get_current_psychologist()
            pricing = PricingService.set_pricing(
                psychologist,
                session_price=data['session_price'],
                package_4_price=data['package_4_price'],
                package_8_price=data['package_8_price'],
                cancellation_policy=data.get('cancellation_policy', ''),
            )
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        logger.info(f"Pricing updated by: {request.user.email}")
        return Response({
            'message': _('Pricing saved successfully'),
            'pricing': PricingSerializer(pricing).data
        }, status=status.HTTP_200_OK)
