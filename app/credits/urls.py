# credits/urls.py
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import ClientCreditViewSet

# Mounted at the app prefix, so no API root view
router = SimpleRouter()
router.register('', ClientCreditViewSet, basename='credit')

urlpatterns = [
    path('', include(router.urls)),
]
