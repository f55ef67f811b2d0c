# app/urls.py
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.authtoken.views import obtain_auth_token

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/auth/token/', obtain_auth_token, name='api-token'),
    path('api/psychologists/', include('psychologists.urls')),
    path('api/appointments/', include('appointments.urls')),
    path('api/subscriptions/', include('subscriptions.urls')),
    path('api/credits/', include('credits.urls')),
    path('api/revenue/', include('revenue.urls')),
    path('api/payments/', include('payments.urls')),
]
