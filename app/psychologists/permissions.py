# psychologists/permissions.py
from rest_framework import permissions
from django.utils.translation import gettext_lazy as _


class CanManagePsychologistCalendar(permissions.BasePermission):
    """
    Permission for managing availability rules, calendar blocks and pricing
    """
    message = _("Only psychologists can manage their calendar and prices.")

    def has_permission(self, request, view):
        """
        Check basic permission for calendar management
        """
        if not request.user.is_authenticated:
            return False

        # Admins act through the same endpoints with psychologist_id
        if request.user.is_admin or request.user.is_staff:
            return True

        return request.user.user_type == 'Psychologist'

    def has_object_permission(self, request, view, obj):
        if request.user.is_admin or request.user.is_staff:
            return True
        return obj.psychologist.user == request.user
