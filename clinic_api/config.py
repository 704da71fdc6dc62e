"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from pydantic import model_validator
from pydantic_settings import BaseSettings
from typing import List, Optional

# Signing secrets shorter than this are rejected in production
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.

    Attributes:
        environment: Deployment mode (development, production or test)
        database_url: SQLAlchemy connection string for the credential store
        redis_url: Redis connection string for the session cache (optional)

        # Token settings
        access_token_secret: Secret used to sign access tokens
        refresh_token_secret: Secret used to sign refresh tokens
        algorithm: Algorithm used for JWT encoding (typically HS256)
        access_token_expire_minutes: Access token lifetime
        refresh_token_expire_days: Refresh token lifetime
        session_ttl_seconds: Lifetime of a cached session snapshot

        # Security settings
        bcrypt_rounds: Cost factor for password hashing
        max_login_attempts: Failed logins before the account is locked
        lock_duration_minutes: How long a locked account stays locked

        # Rate limiting
        login_rate_limit / register_rate_limit: Requests per window and IP

        # Cloudinary settings (optional, avatars fall back to direct URLs)
    """
    environment: str = "development"
    log_level: Optional[str] = None

    # Database settings
    database_url: str = "sqlite:///./clinic.db"

    # Cache settings
    redis_url: Optional[str] = None
    redis_socket_timeout: float = 5.0

    # JWT settings
    access_token_secret: Optional[str] = None
    refresh_token_secret: Optional[str] = None
    algorithm: str = "HS256"
    access_token_expire_minutes: Optional[int] = None
    refresh_token_expire_days: Optional[int] = None
    session_ttl_seconds: Optional[int] = None

    # Password and lockout settings
    bcrypt_rounds: Optional[int] = None
    max_login_attempts: int = 5
    lock_duration_minutes: int = 30

    # Rate limiting (per client IP)
    rate_limit_enabled: bool = True
    login_rate_limit: Optional[int] = None
    login_rate_window_seconds: int = 15 * 60
    register_rate_limit: Optional[int] = None
    register_rate_window_seconds: int = 60 * 60

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:3001"

    # Cloudinary settings
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None

    class Config:
        """Configuration for environment variables loading"""
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @model_validator(mode="after")
    def check_production_secrets(self):
        """Refuse to start in production with missing or weak signing secrets."""
        if self.is_production:
            for name in ("access_token_secret", "refresh_token_secret"):
                value = getattr(self, name)
                if not value or len(value) < MIN_SECRET_LENGTH:
                    raise ValueError(
                        f"{name.upper()} must be at least {MIN_SECRET_LENGTH} characters in production"
                    )
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def access_token_lifetime_minutes(self) -> int:
        if self.access_token_expire_minutes is not None:
            return self.access_token_expire_minutes
        return 15 if self.is_production else 5

    @property
    def refresh_token_lifetime_days(self) -> int:
        if self.refresh_token_expire_days is not None:
            return self.refresh_token_expire_days
        return 7 if self.is_production else 3

    @property
    def session_lifetime_seconds(self) -> int:
        if self.session_ttl_seconds is not None:
            return self.session_ttl_seconds
        # 7 days in production, 3 days otherwise
        return 604800 if self.is_production else 259200

    @property
    def password_hash_rounds(self) -> int:
        if self.bcrypt_rounds is not None:
            return self.bcrypt_rounds
        return 12 if self.is_production else 10

    @property
    def login_requests_per_window(self) -> int:
        if self.login_rate_limit is not None:
            return self.login_rate_limit
        return 100 if self.is_production else 500

    @property
    def register_requests_per_window(self) -> int:
        if self.register_rate_limit is not None:
            return self.register_rate_limit
        return 100 if self.is_production else 500

    @property
    def origins(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def cloudinary_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret
        )


# Create settings instance
settings = Settings()
