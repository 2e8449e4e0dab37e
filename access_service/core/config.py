"""Application configuration management using Pydantic Settings."""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Settings
    app_name: str = Field(default="Access Control Service", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="", alias="LOG_FORMAT")

    # CORS Settings
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    # Database
    database_url: str = Field(default="sqlite:///./access_service.db", alias="DATABASE_URL")

    # Credential secrets
    api_key_encryption_secret: str = Field(default="", alias="API_KEY_ENCRYPTION_SECRET")
    api_key_prefix: str = Field(default="sk_live_", alias="API_KEY_PREFIX")

    # Audit log paging
    audit_log_page_size: int = Field(default=200, alias="AUDIT_LOG_PAGE_SIZE")
    audit_log_max_page_size: int = Field(default=1000, alias="AUDIT_LOG_MAX_PAGE_SIZE")

    # Server Settings
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def effective_log_format(self) -> str:
        """LOG_FORMAT if set, otherwise text in debug mode and json elsewhere."""
        if self.log_format:
            return self.log_format.lower()
        return "text" if self.debug else "json"

    class Config:
        """Pydantic config."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True


# Global settings instance
settings = Settings()
