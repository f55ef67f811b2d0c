# credits/views.py
from rest_framework import status, permissions
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from core.responses import domain_error_response, HANDLED_ERRORS
from users.identity import RequestIdentity
from clients.services import ClientService
from .models import ClientCredit
from .serializers import ClientCreditSerializer
from .services import CreditLedger


class ClientCreditViewSet(GenericViewSet):
    """
    Credits issued to the current client for timely cancellations
    """
    queryset = ClientCredit.objects.none()
    serializer_class = ClientCreditSerializer
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        parameters=[
            OpenApiParameter('status', OpenApiTypes.STR, description='available or redeemed'),
        ],
        responses={200: ClientCreditSerializer(many=True)},
        description="List the current client's credits and the available balance",
        tags=['Credits']
    )
    def list(self, request):
        try:
            client = ClientService.get_client_by_user_or_raise(request.user)
            credits = CreditLedger.get_credits(
                RequestIdentity.from_request(request), client,
                status=request.query_params.get('status')
            )
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'credits': ClientCreditSerializer(credits, many=True).data,
            'available_balance': str(CreditLedger.get_available_balance(client)),
        }, status=status.HTTP_200_OK)
