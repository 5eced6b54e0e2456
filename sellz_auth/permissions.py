# sellz_auth/permissions.py
"""Role to permission mapping.

Roles inherit by explicit composition: every role's set is built once, here,
from the sets of the roles it includes. Lookups are against the resulting flat
mapping only.
"""
from types import MappingProxyType
from typing import FrozenSet, Mapping, Sequence, Union

from fastapi import status

from .errors import AppError

ANY = "*"

USER_PERMISSIONS = frozenset(
    {
        "create:user",
        "get:user-details",
        "patch:user-details",
        "delete:user-details",
    }
)

ADMIN_PERMISSIONS = USER_PERMISSIONS | {
    "get:user",
}

SUPERADMIN_PERMISSIONS = ADMIN_PERMISSIONS | {
    "create:admin",
    "get:admin-user",
    "patch:admin-user",
    "delete:admin-user",
}

PERMISSIONS: Mapping[str, FrozenSet[str]] = MappingProxyType(
    {
        "user": USER_PERMISSIONS,
        "admin": ADMIN_PERMISSIONS,
        "superadmin": SUPERADMIN_PERMISSIONS,
    }
)

ROLES = tuple(PERMISSIONS.keys())

Permission = Union[str, Sequence[str]]


def _normalize(required: Permission | None) -> tuple:
    if required is None:
        return ()
    if isinstance(required, str):
        required = (required,)
    return tuple(p for p in required if p)


def is_public(required: Permission | None) -> bool:
    perms = _normalize(required)
    return bool(perms) and perms[0] == ANY


def has_permission(role: str | None, required: Permission | None) -> bool:
    perms = _normalize(required)
    if not perms:
        return False
    if perms[0] == ANY:
        return True
    granted = PERMISSIONS.get(role or "")
    if granted is None:
        return False
    return all(p in granted for p in perms)


def check_permission(role: str | None, required: Permission | None) -> None:
    if is_public(required):
        return
    if not _normalize(required):
        raise AppError(
            "Permission not provided.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            is_operational=False,
        )
    if not has_permission(role, required):
        raise AppError(
            "User not authorised to perform this action",
            status.HTTP_401_UNAUTHORIZED,
        )
