from __future__ import annotations

from fastapi import Header, HTTPException

from fermes_backend.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    ValidationError,
)
from fermes_backend.domain import Actor, Role


def current_actor(
    x_user_id: str = Header(default="anonymous"),
    x_user_role: str = Header(default=Role.ADMIN.value),
    x_ferme_id: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
) -> Actor:
    """Acting user as forwarded by the authentication layer in front of the API."""

    try:
        role = Role(x_user_role.strip().lower())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"unknown role: {x_user_role}") from exc
    return Actor(uid=x_user_id, role=role, ferme_id=x_ferme_id or None, nom=x_user_name)


def to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, InsufficientStockError):
        return HTTPException(
            status_code=409,
            detail={"message": str(exc), "item": exc.item, "requested": exc.requested, "available": exc.available},
        )
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, InvalidStateError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, StoreError):
        return HTTPException(status_code=502, detail=str(exc))
    raise exc


DOMAIN_ERRORS = (
    ValidationError,
    InvalidStateError,
    PermissionDeniedError,
    InsufficientStockError,
    StoreError,
)
