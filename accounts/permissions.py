from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsOwnerOrAdminForWrites(BasePermission):
    """
    Anyone authenticated may read a blood request; only its requester or an
    admin may change or delete it.
    """
    message = 'Not authorized'

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        user = request.user
        return obj.requested_by_id == user.id or getattr(user, 'is_admin', False)
