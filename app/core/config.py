from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60 * 24, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Civil timezone for "today", day boundaries and ledger display strings
    app_timezone: str = Field("Asia/Kolkata", alias="APP_TIMEZONE")
    # Python weekday numbering: Monday=0 ... Sunday=6
    weekly_rest_day: int = Field(6, ge=0, le=6, alias="WEEKLY_REST_DAY")

    auto_absent_hour: int = Field(18, ge=0, le=23, alias="AUTO_ABSENT_HOUR")
    auto_absent_minute: int = Field(45, ge=0, le=59, alias="AUTO_ABSENT_MINUTE")
    scheduler_enabled: bool = Field(True, alias="SCHEDULER_ENABLED")

    google_sheet_id: Optional[str] = Field(None, alias="GOOGLE_SHEET_ID")
    google_service_account_email: Optional[str] = Field(None, alias="GOOGLE_SERVICE_ACCOUNT_EMAIL")
    google_private_key: Optional[str] = Field(None, alias="GOOGLE_PRIVATE_KEY")
    ledger_worksheet_title: str = Field("Attendance", alias="LEDGER_WORKSHEET_TITLE")
    ledger_timeout_seconds: float = Field(15.0, gt=0, alias="LEDGER_TIMEOUT_SECONDS")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
