from rest_framework import permissions


class IsMessMember(permissions.BasePermission):
    """
    Permission: User must currently belong to a mess.
    """

    message = 'User is not part of any mess'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.current_mess_id)


class IsMessAdmin(permissions.BasePermission):
    """
    Permission: User must be the admin of their current mess.
    """

    message = 'Access denied. Mess admin required'

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and user.current_mess_id
            and user.is_mess_admin
        )

    def has_object_permission(self, request, view, obj):
        # obj is a Mess instance
        return obj.is_admin(request.user)
