"""Application services and dependency injection."""

from typing import Optional

from sqlalchemy.orm import Session

from access_service.core.config import Settings, settings as default_settings
from access_service.core.crypto import SecretCipher
from access_service.core.exceptions import ConfigurationError
from access_service.core.facade import AccessFacade


class ServiceContainer:
    """Holds process-wide collaborators and builds a facade per session."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize the service container."""
        self.settings = settings or default_settings
        self._cipher: Optional[SecretCipher] = None
        self._initialized = False

    def initialize(self) -> None:
        """Initialize all services."""
        if self._initialized:
            return

        secret = self.settings.api_key_encryption_secret
        if not secret:
            raise ConfigurationError(
                "API key encryption secret is not configured",
                config_key="API_KEY_ENCRYPTION_SECRET",
            )
        self._cipher = SecretCipher(secret)
        self._initialized = True

    def get_cipher(self) -> SecretCipher:
        """Get the secret cipher."""
        if not self._initialized:
            self.initialize()
        if not self._cipher:
            raise RuntimeError("Secret cipher not initialized")
        return self._cipher

    def build_facade(self, db: Session) -> AccessFacade:
        """Facade bound to one unit of work."""
        return AccessFacade(
            db,
            self.get_cipher(),
            key_prefix=self.settings.api_key_prefix,
            audit_page_size=self.settings.audit_log_page_size,
            audit_max_page_size=self.settings.audit_log_max_page_size,
        )

    def shutdown(self) -> None:
        """Drop cached collaborators."""
        self._cipher = None
        self._initialized = False


# Global service container instance
_service_container: Optional[ServiceContainer] = None


def get_service_container() -> ServiceContainer:
    """Get the global service container."""
    global _service_container
    if _service_container is None:
        _service_container = ServiceContainer()
    return _service_container
