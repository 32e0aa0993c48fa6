# sentinelvote/authentication/rbac.py

from enum import Enum
from functools import wraps

from flask_jwt_extended import get_jwt, verify_jwt_in_request

from sentinelvote.errors import AuthorizationError

# Two roles: the central authority runs the election, voters take part in it.


class UserRole(Enum):
    VOTER = "voter"
    CENTRAL_AUTHORITY = "central_authority"


class Permission(Enum):
    FOLD_PUBLIC_KEYS = "fold_public_keys"
    CLOSE_ELECTION = "close_election"
    VIEW_VOTER_LIST = "view_voter_list"
    STORE_OWN_KEYS = "store_own_keys"
    MARK_OWN_VOTE = "mark_own_vote"


ROLE_PERMISSIONS = {
    UserRole.VOTER: [
        Permission.STORE_OWN_KEYS,
        Permission.MARK_OWN_VOTE,
    ],
    UserRole.CENTRAL_AUTHORITY: [
        Permission.FOLD_PUBLIC_KEYS,
        Permission.CLOSE_ELECTION,
        Permission.VIEW_VOTER_LIST,
    ],
}


def role_from_claims(claims):
    return UserRole.CENTRAL_AUTHORITY if claims.get("is_central_authority") else UserRole.VOTER


def has_permission(user_role, permission):
    if isinstance(user_role, str):
        user_role = UserRole(user_role)
    if isinstance(permission, str):
        permission = Permission(permission)
    return permission in ROLE_PERMISSIONS.get(user_role, [])


def require_permission(permission):
    """Require a valid access token whose role grants ``permission``."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if not has_permission(role_from_claims(get_jwt()), permission):
                raise AuthorizationError()
            return func(*args, **kwargs)
        return wrapper
    return decorator
