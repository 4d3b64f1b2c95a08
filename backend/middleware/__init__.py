"""
Middleware package for the remiss network backend
"""
from .rbac import (
    UserRole,
    CurrentUser,
    RoleRepository,
    get_current_user,
    get_role_repository,
    check_admin,
    require_admin,
    create_access_token,
    decode_token,
)

__all__ = [
    "UserRole",
    "CurrentUser",
    "RoleRepository",
    "get_current_user",
    "get_role_repository",
    "check_admin",
    "require_admin",
    "create_access_token",
    "decode_token",
]
