# appointments/permissions.py
from rest_framework import permissions
from django.utils.translation import gettext_lazy as _


class IsMarketplaceUser(permissions.BasePermission):
    """
    Any active client, psychologist or admin
    """
    message = _("You must be signed in with a marketplace account.")

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_active)


class CanBookAppointments(permissions.BasePermission):
    """
    Permission for booking appointments - verified clients, or admins booking on their behalf
    """
    message = _("You must be a verified client to book appointments.")

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        if request.user.is_admin or request.user.is_staff:
            return True
        return request.user.is_client and request.user.is_verified


class CanManageSessions(permissions.BasePermission):
    """
    Completing and no-show marking is left to psychologists and admins
    """
    message = _("Only psychologists can update session outcomes.")

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_psychologist or request.user.is_admin or request.user.is_staff
