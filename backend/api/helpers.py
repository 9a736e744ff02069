"""Shared API helpers for route handlers."""

from typing import TypeVar

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from database import Base
from utils.request_context import get_request_id, new_request_id

T = TypeVar("T", bound=Base)


def get_or_404(db: Session, model: type[T], entity_id: str, detail: str = "Not found") -> T:
    """Fetch a single entity by primary key or raise 404.

    Args:
        db: Database session.
        model: SQLAlchemy model class.
        entity_id: Primary key value.
        detail: Error message for the 404 response.

    Returns:
        The entity instance.

    Raises:
        HTTPException: 404 if the entity doesn't exist.
    """
    entity = db.query(model).filter(model.id == entity_id).first()
    if not entity:
        raise HTTPException(status_code=404, detail=detail)
    return entity


def current_request_id(request: Request) -> str:
    """Dependency returning the correlation id assigned by the request middleware."""
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    if not request_id:
        request_id = new_request_id()
        request.state.request_id = request_id
    return request_id
