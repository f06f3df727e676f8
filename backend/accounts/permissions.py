from rest_framework.permissions import BasePermission


class _RolePermission(BasePermission):
    role = None

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "role", None) == self.role


class IsPassenger(_RolePermission):
    """Allows access only to users with role == 'passenger'."""
    role = "passenger"


class IsDriver(_RolePermission):
    """Allows access only to users with role == 'driver'."""
    role = "driver"


class IsOperator(_RolePermission):
    """
    Allows access only to operator accounts.
    Operator endpoints are further scoped by request.user.operator_code.
    """
    role = "operator"
