"""
Configuration management for Repurpose
Environment-based settings with startup validation
"""

import os
import secrets
import tempfile
from pathlib import Path
from typing import Any, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from .constants import (
    APP_NAME,
    APP_VERSION,
    DEFAULT_AIRTABLE_API_URL,
    DEFAULT_AIRTABLE_MAX_PAGES,
    DEFAULT_CORS_ORIGINS,
    DEFAULT_DATABASE_POOL_SIZE,
    DEFAULT_DATABASE_URL,
    DEFAULT_DEBUG,
    DEFAULT_EXTERNAL_API_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_JWT_EXPIRY_HOURS,
    DEFAULT_MAX_UPLOAD_SIZE_MB,
    DEFAULT_OPENAI_MAX_TOKENS,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_PORT,
    DEFAULT_PRESIGNED_URL_EXPIRY,
    DEFAULT_RATE_LIMIT_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW,
    DEFAULT_S3_REGION,
    DEFAULT_SECURE_COOKIES,
    DEFAULT_UPLOAD_PREFIX,
    DEFAULT_WEBHOOK_TIMEOUT,
    JWT_ALGORITHM,
)


class Settings(BaseSettings):
    """Application settings with security validation"""

    # Application
    app_name: str = APP_NAME
    app_version: str = APP_VERSION
    debug: bool = DEFAULT_DEBUG

    # Security
    jwt_secret: str = secrets.token_urlsafe(32)
    jwt_algorithm: str = JWT_ALGORITHM
    jwt_expiry_hours: int = DEFAULT_JWT_EXPIRY_HOURS

    # Credential encryption passphrase; read without the REPURPOSE_ prefix
    encryption_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ENCRYPTION_KEY", "REPURPOSE_ENCRYPTION_KEY"),
    )
    session_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SESSION_SECRET", "REPURPOSE_SESSION_SECRET"),
    )

    # CORS - explicit configuration required
    cors_origins: List[str] = DEFAULT_CORS_ORIGINS

    # Database
    database_url: str = DEFAULT_DATABASE_URL
    database_pool_size: int = DEFAULT_DATABASE_POOL_SIZE

    # Upload relay
    upload_temp_dir: Optional[str] = None
    max_upload_size_mb: int = DEFAULT_MAX_UPLOAD_SIZE_MB
    webhook_timeout: float = DEFAULT_WEBHOOK_TIMEOUT

    # Airtable
    airtable_api_url: str = DEFAULT_AIRTABLE_API_URL
    airtable_max_pages: int = DEFAULT_AIRTABLE_MAX_PAGES
    external_api_timeout: float = DEFAULT_EXTERNAL_API_TIMEOUT

    # OpenAI
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_max_tokens: int = DEFAULT_OPENAI_MAX_TOKENS

    # Object storage (S3 compatible)
    s3_endpoint: Optional[str] = None
    s3_bucket: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_region: str = DEFAULT_S3_REGION
    s3_upload_prefix: str = DEFAULT_UPLOAD_PREFIX
    presigned_url_expiry: int = DEFAULT_PRESIGNED_URL_EXPIRY

    # Rate Limiting
    rate_limit_requests: int = DEFAULT_RATE_LIMIT_REQUESTS
    rate_limit_window: int = DEFAULT_RATE_LIMIT_WINDOW

    # Server
    host: str = DEFAULT_HOST  # nosec B104 - intentional bind to all interfaces for web server
    port: int = DEFAULT_PORT

    # Security flags
    secure_cookies: bool = DEFAULT_SECURE_COOKIES  # Set to True in production with HTTPS

    # Logging
    enable_audit_logging: bool = True
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "REPURPOSE_"
        extra = "ignore"

    def validate_settings(self) -> None:
        """Validate critical settings on startup"""
        errors = []

        if len(self.jwt_secret) < 32:
            errors.append("JWT_SECRET must be at least 32 characters long")

        if not self.cors_origins:
            errors.append("CORS_ORIGINS must be configured")

        if "*" in self.cors_origins and not self.debug:
            errors.append("CORS wildcard (*) not allowed in production")

        if self.rate_limit_requests <= 0:
            errors.append("RATE_LIMIT_REQUESTS must be positive")

        if self.rate_limit_window <= 0:
            errors.append("RATE_LIMIT_WINDOW must be positive")

        if self.max_upload_size_mb < 1:
            errors.append("MAX_UPLOAD_SIZE_MB must be at least 1")

        if self.webhook_timeout <= 0:
            errors.append("WEBHOOK_TIMEOUT must be positive")

        if self.airtable_max_pages < 1:
            errors.append("AIRTABLE_MAX_PAGES must be at least 1")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append("LOG_LEVEL must be a standard logging level name")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(
                f"- {error}" for error in errors
            )
            raise ValueError(error_msg)

    @property
    def encryption_passphrase(self) -> Optional[str]:
        """Passphrase for credential encryption, ENCRYPTION_KEY first"""
        return self.encryption_key or self.session_secret or None

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def absolute_upload_temp_dir(self) -> Path:
        """Directory for transient upload files (platform temp dir by default)"""
        if self.upload_temp_dir:
            return Path(self.upload_temp_dir)
        return Path(tempfile.gettempdir())

    @property
    def object_storage_configured(self) -> bool:
        return bool(self.s3_endpoint and self.s3_bucket and self.s3_access_key and self.s3_secret_key)

    def create_required_directories(self) -> None:
        """Create the SQLite database directory and upload temp dir"""
        directories = [self.absolute_upload_temp_dir]

        if self.database_url.startswith("sqlite:///"):
            db_path = self.database_url.replace("sqlite:///", "")
            if not os.path.isabs(db_path):
                # Relative to project root
                project_root = Path(__file__).parent.parent.parent
                db_path = str(project_root / db_path)
            directories.append(Path(db_path).parent)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def model_post_init(self, __context: Any) -> None:
        """Post-initialization validation and setup"""
        self.validate_settings()
        self.create_required_directories()


# Global settings instance
settings = Settings()
