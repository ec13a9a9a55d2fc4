from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application Settings
    PROJECT_NAME: str = "Bandcash"
    APP_ENV: str = "development"  # 'development' | 'production'
    DEBUG: bool = True
    BASE_URL: str = "http://localhost:8000"

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./bandcash.sqlite"

    LOG_LEVEL: str = "INFO"

    # Email Settings (magic-link delivery)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAIL_FROM: str = "bandcash@localhost"
    MAGIC_LINK_EXPIRE_MINUTES: int = 15

    SUPERADMIN_EMAIL: str | None = None

    # Session cookie signing
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"

    DISABLE_SIGNUP: bool = False

    # Rate limiting is backed by Redis through fastapi-limiter
    RATE_LIMIT_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379"

    # Cookie lifetimes
    CLIENT_ID_MAX_AGE_DAYS: int = 30
    SESSION_MAX_AGE_DAYS: int = 30
    CSRF_MAX_AGE_DAYS: int = 30
    LANG_MAX_AGE_DAYS: int = 365

    # Realtime
    SSE_QUEUE_SIZE: int = 64
    SSE_PING_SECONDS: int = 15
    SHUTDOWN_GRACE_SECONDS: int = 10

    # Request body limits
    MAX_BODY_BYTES: int = 1024 * 1024
    AUTH_MAX_BODY_BYTES: int = 64 * 1024

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.strip().lower() == "production"

    def _post_init(self):
        self.APP_ENV = self.APP_ENV.strip().lower()
        self.LOG_LEVEL = self.LOG_LEVEL.strip().upper()
        if self.APP_ENV not in {"development", "production"}:
            raise ValueError("APP_ENV must be one of: development, production")
        if self.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            raise ValueError("LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR")
        if self.SUPERADMIN_EMAIL:
            self.SUPERADMIN_EMAIL = self.SUPERADMIN_EMAIL.strip().lower()
        # Production needs a public URL for magic links and a working mail relay
        if self.is_production:
            missing = [
                name for name in ("SMTP_HOST", "SMTP_USERNAME", "SMTP_PASSWORD")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"{', '.join(missing)} must be set in production")
            if self.BASE_URL.startswith("http://localhost"):
                raise ValueError("BASE_URL must be set to the public URL in production")
            if self.SECRET_KEY == "change-me-in-production":
                raise ValueError("SECRET_KEY must be set in production")


settings = Settings()
settings._post_init()
