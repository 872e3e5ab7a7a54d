from typing import Optional

from fastapi import HTTPException, status


class AuthorizationError(Exception):
    """Base class for errors raised by the authorization engine."""


class Unauthenticated(AuthorizationError):
    """No caller identity was supplied; a role is never defaulted for it."""

    def __init__(self, message: str = "Caller identity is required"):
        super().__init__(message)


class MissingResourceId(AuthorizationError):
    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"{kind} id is required")


class ResourceNotFound(AuthorizationError):
    def __init__(self, kind: str, resource_id: str):
        self.kind = kind
        self.resource_id = resource_id
        super().__init__(f"{kind} not found: {resource_id}")


class InvalidRoleState(AuthorizationError):
    """A stored role value is not a known role. The gate turns this into a deny."""

    def __init__(self, user_id: str, value):
        self.user_id = user_id
        self.value = value
        super().__init__(f"Unrecognized role {value!r} for user {user_id}")


# HTTP-layer exceptions built from a deny decision

class PermissionDenied(HTTPException):
    def __init__(self, detail: str, role: Optional[str] = None):
        body = {"error": detail}
        if role:
            body["role"] = role
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=body,
        )


class ResourceHidden(HTTPException):
    """404 used instead of 403 so a MEMBER cannot probe for resources."""

    def __init__(self, kind: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{kind.capitalize()} not found",
        )
