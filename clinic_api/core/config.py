from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Clinic Booking API"
    CLINIC_NAME: str = "32Dental Avenue"

    # Server
    PORT: int = 8000
    ENVIRONMENT: str = "development"
    SERVERLESS: bool = False
    VERCEL: str = ""
    CORS_ORIGINS: List[str] = ["*"]

    # Supabase (bookings database)
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    BOOKINGS_TABLE: str = "bookings"
    DB_SERVER_SELECTION_TIMEOUT_MS: int = 5000
    DB_CONNECT_TIMEOUT_MS: int = 10000

    # Security
    JWT_SECRET: str = "change_this_secret"
    ADMIN_EMAIL_LOGIN: str = "demo@admin"
    ADMIN_PASSWORD: str = "demo1234"

    # Notifications
    SMTP_SERVER: str = ""
    SMTP_PORT: int = 587
    SMTP_USE_SSL: bool = False
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_TIMEOUT_S: float = 10.0
    FROM_EMAIL: str = '"32Dental Avenue" <no-reply@32dentalavenue.com>'
    ADMIN_NOTIFY_EMAIL: str = "admin@32dentalavenue.com"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_serverless(self) -> bool:
        # Vercel sets VERCEL=1 in every function runtime
        return self.SERVERLESS or self.VERCEL == "1"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

settings = Settings()
