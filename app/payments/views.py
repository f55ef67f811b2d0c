# payments/views.py
from rest_framework import status, permissions
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet
from rest_framework.mixins import ListModelMixin, RetrieveModelMixin
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema
import logging

from core.responses import domain_error_response, HANDLED_ERRORS
from .models import Payment
from .serializers import PaymentSerializer
from .services import WebhookService, WebhookVerificationError

logger = logging.getLogger(__name__)


class PaymentViewSet(GenericViewSet, ListModelMixin, RetrieveModelMixin):
    """
    Read-only payment history
    """
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        """Filter payments by user"""
        user = self.request.user
        queryset = Payment.objects.select_related(
            'client__user', 'psychologist__user'
        ).order_by('-created_at')

        # Admins can see all payments
        if user.is_admin or user.is_staff:
            return queryset

        if user.is_psychologist:
            return queryset.filter(psychologist__user=user)

        return queryset.filter(client__user=user)

    @extend_schema(
        responses={200: PaymentSerializer(many=True)},
        description="List the caller's payments",
        tags=['Payments']
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(
        responses={200: PaymentSerializer},
        description="Get payment details",
        tags=['Payments']
    )
    def retrieve(self, request, *args, **kwargs):
        return super().retrieve(request, *args, **kwargs)


class StripeWebhookView(APIView):
    """
    Stripe webhook endpoint
    """
    permission_classes = [permissions.AllowAny]
    authentication_classes = []  # No authentication for webhooks

    @extend_schema(
        request={
            'type': 'object',
            'description': 'Stripe webhook payload'
        },
        responses={
            200: {
                'description': 'Webhook processed',
                'example': {
                    'status': 'success',
                    'event_type': 'payment_intent.succeeded',
                    'processed': True
                }
            },
            400: {'description': 'Signature or payload rejected'}
        },
        description="Handle Stripe webhook events",
        tags=['Webhooks']
    )
    def post(self, request):
        """
        Handle Stripe webhook events
        POST /api/payments/webhooks/stripe/
        """
        payload = request.body
        signature = request.META.get('HTTP_STRIPE_SIGNATURE', '')

        try:
            result = WebhookService.process_webhook_event(
                provider_name='stripe',
                payload=payload,
                signature=signature,
            )
        except WebhookVerificationError as e:
            logger.warning(f"Rejected Stripe webhook: {str(e)}")
            return Response({
                'status': 'error',
                'error': str(e),
                'processed': False
            }, status=status.HTTP_400_BAD_REQUEST)
        except HANDLED_ERRORS as e:
            logger.error(f"Stripe webhook could not be applied: {type(e).__name__}: {str(e)}")
            return domain_error_response(e)

        # Unknown payments and ignored events are acknowledged so Stripe stops retrying
        logger.info(f"Stripe webhook handled: {result.get('event_type', 'unknown')} -> {result['status']}")
        return Response(result, status=status.HTTP_200_OK)
