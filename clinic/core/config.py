from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from urllib.parse import quote_plus
from enum import Enum

class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

class Settings(BaseSettings):
    # Environment Configuration
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Project Information
    PROJECT_NAME: str = "Clinic Backend"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"

    # Server settings
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: str = "clinic"
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    # Security
    SECRET_KEY: str = "change-me-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # JWT Settings
    ALGORITHM: str = "HS256"

    # Wall-clock timezone for appointment dates and times
    CLINIC_TIMEZONE: str = "Europe/Istanbul"

    # Booking policy
    SLOT_STRIDE_MINUTES: int = 50
    BUSINESS_START_HOUR: int = 9
    BUSINESS_END_HOUR: int = 22
    CANCEL_WINDOW_HOURS: int = 24
    RESCHEDULE_WINDOW_HOURS: int = 12
    NO_SHOW_GRACE_HOURS: int = 1
    REMINDER_OFFSETS_HOURS: List[int] = [24, 2]
    MIN_DURATION_MINUTES: int = 30
    MAX_DURATION_MINUTES: int = 120
    DEFAULT_DURATION_MINUTES: int = 50

    # CORS
    CORS_ORIGINS: List[str] = []

    # Metrics
    METRICS_ENABLED: bool = False

    # Email Configuration (appointment notifications)
    EMAIL_ENABLED: bool = False  # When False, emails are logged instead of sent
    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_TIMEOUT_SECONDS: int = 15
    FROM_EMAIL: str = "no-reply@clinic.local"
    CLINIC_NAME: str = "Therapy Clinic"
    FRONTEND_URL: str = "http://localhost:3000"

    # --- Validators & Derived Settings ---
    @field_validator("REMINDER_OFFSETS_HOURS", mode="after")
    @classmethod
    def sort_reminder_offsets(cls, v: List[int]) -> List[int]:
        # Earliest reminder first, so records are stored in send order
        return sorted({int(x) for x in v if int(x) > 0}, reverse=True)

    @model_validator(mode="after")
    def _finalize_and_validate(self) -> "Settings":
        # Derive SQLALCHEMY_DATABASE_URI if not provided
        if not self.SQLALCHEMY_DATABASE_URI:
            safe_user = quote_plus(self.POSTGRES_USER)
            if self.POSTGRES_PASSWORD:
                safe_password = quote_plus(self.POSTGRES_PASSWORD)
                self.SQLALCHEMY_DATABASE_URI = (
                    f"postgresql://{safe_user}:{safe_password}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
                )
            else:
                self.SQLALCHEMY_DATABASE_URI = (
                    f"postgresql://{safe_user}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
                )

        # Railway/Heroku style URLs
        if self.SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
            self.SQLALCHEMY_DATABASE_URI = self.SQLALCHEMY_DATABASE_URI.replace("postgres://", "postgresql://", 1)

        if not 0 <= self.BUSINESS_START_HOUR < self.BUSINESS_END_HOUR <= 24:
            raise ValueError("BUSINESS_START_HOUR must be before BUSINESS_END_HOUR")
        if self.SLOT_STRIDE_MINUTES <= 0:
            raise ValueError("SLOT_STRIDE_MINUTES must be positive")
        return self

    # Environment-specific properties
    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION

    @property
    def allowed_cors_origins(self) -> List[str]:
        if self.CORS_ORIGINS:
            return self.CORS_ORIGINS
        if self.is_development:
            return ["http://localhost:3000", "http://127.0.0.1:3000"]
        return [self.FRONTEND_URL]

    @model_validator(mode='after')
    def validate_environment_config(self):
        """Validate environment-specific configuration requirements"""
        if self.is_production:
            if self.SECRET_KEY == "change-me-in-production":
                raise ValueError("SECRET_KEY must be set in production")
            if self.EMAIL_ENABLED and not self.SMTP_SERVER:
                raise ValueError("SMTP_SERVER is required when EMAIL_ENABLED is set")
        return self

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra='ignore')

settings = Settings()
