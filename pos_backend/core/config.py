from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    APP_NAME: str = "Inventory POS API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    MONGODB_URL: str
    DATABASE_NAME: str
    # Multi-document transactions need a replica set; turn off for a standalone server
    MONGODB_TRANSACTIONS: bool = True
    MONGODB_TIMEOUT_MS: int = 5000

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Email (OTP delivery)
    MAIL_USERNAME: str | None = None
    MAIL_PASSWORD: str | None = None
    MAIL_FROM: str | None = None
    MAIL_FROM_NAME: str = "Inventory POS"
    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_STARTTLS: bool = True
    MAIL_SSL_TLS: bool = False
    OTP_EXPIRE_MINUTES: int = 10

    # Super admin bootstrap
    SUPER_ADMIN_USERNAME: str = "super admin"
    SUPER_ADMIN_EMAIL: str | None = None
    SUPER_ADMIN_PASSWORD: str | None = None

    # Paging
    DEFAULT_PAGE_SIZE: int = 20
    PRODUCT_PAGE_SIZE: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    @property
    def mail_enabled(self) -> bool:
        return bool(self.MAIL_USERNAME and self.MAIL_PASSWORD and self.MAIL_FROM)

settings = Settings()
