# payments/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import PaymentViewSet, StripeWebhookView

router = DefaultRouter()
router.register('payments', PaymentViewSet, basename='payments')

urlpatterns = [
    path('', include(router.urls)),

    # Webhook endpoints
    path('webhooks/stripe/', StripeWebhookView.as_view(), name='stripe-webhook'),
]
