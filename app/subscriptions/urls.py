# subscriptions/urls.py
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import SubscriptionViewSet

# Mounted at the app prefix, so no API root view
router = SimpleRouter()
router.register('', SubscriptionViewSet, basename='subscription')

urlpatterns = [
    path('', include(router.urls)),
]

# - GET    /api/subscriptions/                                   -> list subscriptions
# - GET    /api/subscriptions/{id}/                              -> subscription with history
# - POST   /api/subscriptions/{id}/cancel-at-period-end/         -> schedule cancellation
