# subscriptions/views.py
from rest_framework import status, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import extend_schema
import logging

from core.responses import domain_error_response, HANDLED_ERRORS
from users.identity import RequestIdentity
from appointments.permissions import IsMarketplaceUser
from .models import Subscription
from .serializers import SubscriptionSerializer, SubscriptionDetailSerializer
from .services import PackageSubscriptionManager

logger = logging.getLogger(__name__)


class SubscriptionViewSet(GenericViewSet):
    """
    Package subscriptions of the caller. Reading a subscription applies any
    overdue period renewal first.
    """
    queryset = Subscription.objects.none()
    serializer_class = SubscriptionSerializer
    permission_classes = [permissions.IsAuthenticated, IsMarketplaceUser]

    def get_identity(self):
        return RequestIdentity.from_request(self.request)

    @extend_schema(
        responses={200: SubscriptionSerializer(many=True)},
        description="List package subscriptions",
        tags=['Subscriptions']
    )
    def list(self, request):
        try:
            subscriptions = PackageSubscriptionManager.list_subscriptions(self.get_identity())
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        return Response({
            'count': len(subscriptions),
            'subscriptions': SubscriptionSerializer(subscriptions, many=True).data
        }, status=status.HTTP_200_OK)

    @extend_schema(
        responses={200: SubscriptionDetailSerializer, 404: {'description': 'Subscription not found'}},
        description="Subscription details with its history",
        tags=['Subscriptions']
    )
    def retrieve(self, request, pk=None):
        try:
            subscription = PackageSubscriptionManager.get_subscription(self.get_identity(), pk)
        except HANDLED_ERRORS as e:
            return domain_error_response(e)
        return Response(SubscriptionDetailSerializer(subscription).data, status=status.HTTP_200_OK)

    @extend_schema(
        request=None,
        responses={200: SubscriptionSerializer},
        description="Stop the subscription when the current period ends",
        tags=['Subscriptions']
    )
    @action(detail=True, methods=['post'], url_path='cancel-at-period-end')
    def cancel_at_period_end(self, request, pk=None):
        """
        POST /api/subscriptions/{id}/cancel-at-period-end/
        """
        try:
            subscription = PackageSubscriptionManager.cancel_at_period_end(self.get_identity(), pk)
        except HANDLED_ERRORS as e:
            return domain_error_response(e)

        logger.info(f"Subscription {pk} cancellation scheduled by {request.user.email}")
        return Response({
            'message': _('Subscription will be cancelled at the end of the current period'),
            'subscription': SubscriptionSerializer(subscription).data
        }, status=status.HTTP_200_OK)
