# revenue/views.py
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
from psychologists.services import ProfileService
from .services import FinancialSummaryService
from .serializers import FinancialSummarySerializer, PlatformSummarySerializer

logger = logging.getLogger(__name__)


class RevenueSummaryViewSet(GenericViewSet):
    """
    Deferred and recognized revenue balances
    """
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        parameters=[OpenApiParameter('psychologist_id', OpenApiTypes.UUID, description='Admin only')],
        responses={200: FinancialSummarySerializer},
        description="Financial summary of the current psychologist",
        tags=['Revenue']
    )
    @action(detail=False, methods=['get'])
    def summary(self, request):
        """
        GET /api/revenue/summary/
        """
        identity = RequestIdentity.from_request(request)
        try:
            if identity.is_admin:
                psychologist_id = request.query_params.get('psychologist_id')
                if not psychologist_id:
                    return Response({
                        'psychologist_id': [_("Admins must pass psychologist_id")]
                    }, status=status.HTTP_400_BAD_REQUEST)
                psychologist = ProfileService.get_psychologist_by_id(psychologist_id)
            else:
                psychologist = ProfileService.get_psychologist_by_user_or_raise(request.user)
            summary = FinancialSummaryService.get_financial_summary(identity, psychologist)
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response(FinancialSummarySerializer(summary).data, status=status.HTTP_200_OK)

    @extend_schema(
        responses={200: PlatformSummarySerializer},
        description="Platform-wide balances (admins only)",
        tags=['Revenue']
    )
    @action(detail=False, methods=['get'], url_path='summary/platform')
    def platform_summary(self, request):
        """
        GET /api/revenue/summary/platform/
        """
        try:
            summary = FinancialSummaryService.get_platform_summary(RequestIdentity.from_request(request))
        except HANDLED_ERRORS as e:
            return domain_error_response(e)
        return Response(PlatformSummarySerializer(summary).data, status=status.HTTP_200_OK)
