# psychologists/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    PsychologistAvailabilityViewSet,
    CalendarBlockViewSet,
    PsychologistPricingViewSet,
)

router = DefaultRouter()
router.register('availability', PsychologistAvailabilityViewSet, basename='psychologist-availability')
router.register('blocks', CalendarBlockViewSet, basename='psychologist-blocks')
router.register('pricing', PsychologistPricingViewSet, basename='psychologist-pricing')

urlpatterns = [
    path('', include(router.urls)),
]

# The resulting URL patterns will be:
#
# Availability rules:
# - GET    /api/psychologists/availability/                         -> active weekly and exception rules
# - POST   /api/psychologists/availability/                         -> create a rule
# - POST   /api/psychologists/availability/{id}/supersede/          -> retire a rule, optionally replacing it
# - POST   /api/psychologists/availability/block-day/               -> block a whole day
#
# Calendar blocks:
# - GET    /api/psychologists/blocks/                               -> list blocks
# - POST   /api/psychologists/blocks/                               -> create a block
# - DELETE /api/psychologists/blocks/{id}/                          -> delete a block
#
# Pricing:
# - GET    /api/psychologists/pricing/                              -> current prices and cap
# - PUT    /api/psychologists/pricing/update/                       -> create or replace prices
