from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Appointment Scheduler"
    API_V1_STR: str = "/api"

    # Server
    PORT: int = 5000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    ERROR_LOG_FILE: str = "logs/errors.log"
    INTEGRATION_LOG_FILE: str = "logs/integrations.log"
    CORS_ORIGINS: str = "http://localhost:3000"

    # Business rules
    BUSINESS_TIMEZONE: str = "Asia/Kolkata"
    OPENING_HOUR: int = 9
    CLOSING_HOUR: int = 17
    CLOSED_WEEKDAY: int = 6  # Monday == 0
    SLOT_DURATION_MINUTES: int = 30
    RETENTION_DAYS: int = 30

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    BOOKINGS_TABLE: str = "bookings"

    # Google
    GOOGLE_CALENDAR_ID: str = "primary"
    GOOGLE_CREDENTIALS_JSON: str = ""
    GOOGLE_CREDENTIALS_FILE: str = "google_credentials.json"
    CALENDAR_TIMEZONE: str = "Asia/Kolkata"

    # External scheduling SaaS (Cal.com compatible)
    SAAS_API_URL: str = "https://api.cal.com/v1"
    SAAS_API_KEY: str = ""
    SAAS_EVENT_TYPE_ID: str = ""

    # Email
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_SENDER_NAME: str = "Appointment Scheduler"

    # Notifications
    NOTIFICATION_SINKS: str = "realtime,calendar,saas,email"
    SINK_TIMEOUT_SECONDS: float = 10.0

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def notification_sinks(self) -> List[str]:
        return [s.strip().lower() for s in self.NOTIFICATION_SINKS.split(",") if s.strip()]


settings = Settings()
