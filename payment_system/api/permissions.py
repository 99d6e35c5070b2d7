from django.conf import settings
from rest_framework import permissions


class IsStaffOrPaymentSource(permissions.BasePermission):
    """
    Payment processor callbacks: staff users, or requests from a whitelisted
    internal address (the webhook relay).
    """

    def has_permission(self, request, view):
        if request.user and request.user.is_staff:
            return True

        x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
        if x_forwarded_for:
            ip = x_forwarded_for.split(",")[0].strip()
        else:
            ip = request.META.get("REMOTE_ADDR")

        return ip in getattr(settings, "INTERNAL_SERVICE_IPS", [])
