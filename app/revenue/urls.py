# revenue/urls.py
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import RevenueSummaryViewSet

# Mounted at the app prefix, so no API root view
router = SimpleRouter()
router.register('', RevenueSummaryViewSet, basename='revenue')

urlpatterns = [
    path('', include(router.urls)),
]

# - GET    /api/revenue/summary/             -> psychologist financial summary
# - GET    /api/revenue/summary/platform/    -> platform summary (admin)
