"""Error taxonomy for the access control service.

Each exception carries:
  error_code    : machine-readable code for client-side error handling
  message       : short human-readable description, safe to show to callers
  details       : optional structured context (field names, ids, limits)
  recovery_hint : actionable guidance for the caller (shown in error responses)

Messages never contain raw store error text; the store-level cause is kept on
``__cause__`` and only reaches the operational log.
"""

from typing import Any, Dict, Optional


class AccessServiceError(Exception):
    """Base exception for access service errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "ACCESS_SERVICE_ERROR"
        self.details = details or {}
        self.recovery_hint = recovery_hint or (
            "An unexpected error occurred. Please retry your request."
        )


class ValidationError(AccessServiceError):
    """Field-level, user-correctable input error."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(
            message,
            error_code="VALIDATION_ERROR",
            details=details,
            recovery_hint=recovery_hint or (
                f"The value provided for '{field}' is invalid. Correct it and retry."
                if field
                else "Correct the submitted values and retry."
            ),
        )
        self.field = field


class ConflictError(AccessServiceError):
    """Duplicate name/slug, or an operation forbidden on a system entity."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(
            message,
            error_code="CONFLICT",
            details=details,
            recovery_hint=recovery_hint or (
                "The request conflicts with existing data. Choose a different value and retry."
            ),
        )


class NotFoundError(AccessServiceError):
    """No row exists for the given id/project pair."""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            error_code="NOT_FOUND",
            details=details,
            recovery_hint="Refresh the page; the item may have been removed.",
        )
        self.entity_type = entity_type


class AuthorizationError(AccessServiceError):
    """Failed credential verification or unauthenticated caller."""

    def __init__(self, message: str = "Unauthorized.", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            error_code="UNAUTHORIZED",
            details=details,
            recovery_hint="Provide valid credentials and retry.",
        )


class PersistenceError(AccessServiceError):
    """Store-level failure not otherwise classified."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            error_code="PERSISTENCE_ERROR",
            details=details,
            recovery_hint="Retry in a few seconds. If the problem persists, contact support.",
        )


class ConfigurationError(AccessServiceError):
    """Exception raised for server configuration errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            error_code="CONFIGURATION_ERROR",
            details=details,
            recovery_hint=(
                f"The server is misconfigured (key: '{config_key}'). "
                "Contact your system administrator to correct the server configuration."
            ),
        )
        self.config_key = config_key
