# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    # Database: DATABASE_URL wins, then the DB_* parts, then local sqlite
    DATABASE_URL: str | None = None
    DB_USER: str | None = None
    DB_PASSWORD: str | None = None
    DB_DATABASE: str | None = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    INSTANCE_CONNECTION_NAME: str | None = None  # Cloud SQL unix socket

    APP_NAME: str = "Support Desk"
    APP_DESC: str = "Technical support requests, remarks and self-help guides"
    APP_VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    PORT: int = 3001

    # CORS origins, comma separated
    CORS_ORIGINS: str | None = None

    # Admin session
    ADMIN_ID: str = "admin"
    ADMIN_PASSWORD: str = Field(default="change-me")
    JWT_SECRET: str = Field(default="change-me")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_HOURS: int = 8
    BCRYPT_ROUNDS: int = 10
    STRICT_OWNER_AUTH: bool = True

    # Attachments
    UPLOAD_DIR: str = "./uploads"
    UPLOAD_URL_PATH: str = "/uploads"
    GCS_BUCKET_NAME: str | None = None
    MAX_UPLOAD_FILES: int = 5
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    IMAGE_MAX_WIDTH: int = 1024
    IMAGE_QUALITY: int = 90

    # Mail
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_STARTTLS: bool = True
    EMAIL_USER: str | None = None
    EMAIL_PASS: str | None = None
    EMAIL_SENDER_NAME: str = "Support Desk"
    ADMIN_EMAIL: str | None = None

    REPORT_TIMEZONE: str = "UTC"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def database_url(self) -> str | URL:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if not self.DB_USER:
            return "sqlite:///./support_desk.db"
        if self.INSTANCE_CONNECTION_NAME:
            return URL.create(
                "postgresql+psycopg2",
                username=self.DB_USER,
                password=self.DB_PASSWORD,
                database=self.DB_DATABASE,
                query={"host": f"/cloudsql/{self.INSTANCE_CONNECTION_NAME}"},
            )
        return URL.create(
            "postgresql+psycopg2",
            username=self.DB_USER,
            password=self.DB_PASSWORD,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_DATABASE,
        )

    @property
    def cors_origins(self) -> list[str]:
        if not self.CORS_ORIGINS:
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def uses_bucket(self) -> bool:
        return bool(self.GCS_BUCKET_NAME)


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
