"""Database models and connection management."""

from access_service.db.database import get_db, init_db, build_engine, engine, Base, SessionLocal
from access_service.db.models import (
    ApiKey,
    AuditLog,
    Permission,
    Project,
    Role,
    RolePermission,
    UserRole,
)

__all__ = [
    "get_db",
    "init_db",
    "build_engine",
    "engine",
    "Base",
    "SessionLocal",
    "ApiKey",
    "AuditLog",
    "Permission",
    "Project",
    "Role",
    "RolePermission",
    "UserRole",
]
