"""
Roles and their ordering.

This defines WHO outranks whom, not HOW we check it.
The actual checking happens in policies.py.
"""

from aiquiz.core.models import UserRole


# Lowest to highest. An admin can do everything a professor can.
ROLE_ORDER: list[UserRole] = [
    UserRole.PROFESSOR,
    UserRole.ADMIN,
]


# Shown to the client when a role check fails
ROLE_DENIED_MESSAGES: dict[UserRole, str] = {
    UserRole.PROFESSOR: "Acceso denegado. Se requieren permisos de profesor",
    UserRole.ADMIN: "Acceso denegado. Se requieren permisos de administrador",
}


def role_satisfies(role: UserRole | str, min_role: UserRole | str | None) -> bool:
    """Does `role` meet the minimum `min_role`? No minimum means yes."""
    if min_role is None:
        return True
    try:
        role = UserRole(role)
        min_role = UserRole(min_role)
    except ValueError:
        return False
    return ROLE_ORDER.index(role) >= ROLE_ORDER.index(min_role)
