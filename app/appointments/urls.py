# appointments/urls.py
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import AppointmentViewSet

# Mounted at the app prefix, so no API root view
router = SimpleRouter()
router.register('', AppointmentViewSet, basename='appointment')

urlpatterns = [
    path('', include(router.urls)),
]

# The resulting URL patterns will be:
#
# - GET    /api/appointments/                          -> list the caller's appointments
# - POST   /api/appointments/                          -> create booking (single, package4, package8, credit)
# - GET    /api/appointments/{id}/                     -> appointment details
# - POST   /api/appointments/{id}/cancel/              -> cancel (credit or restored session when timely)
# - POST   /api/appointments/{id}/complete/            -> complete and recognize revenue
# - POST   /api/appointments/{id}/no-show/             -> mark no-show
# - GET    /api/appointments/available-slots/          -> bookable slots for a date or date range
