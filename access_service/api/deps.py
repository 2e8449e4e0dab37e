"""FastAPI dependency functions for injecting services from app.state."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from access_service.core.facade import AccessFacade
from access_service.core.services import ServiceContainer
from access_service.db.database import get_db


def get_container(request: Request) -> ServiceContainer:
    """Get the service container from app state."""
    return request.app.state.container


def get_facade(
    container: ServiceContainer = Depends(get_container),
    db: Session = Depends(get_db),
) -> AccessFacade:
    """Inject a facade bound to the request's database session."""
    return container.build_facade(db)
