from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    # Dates such as "today" for overdue checks are taken in this timezone.
    fee_timezone: str = Field("Asia/Kolkata", alias="FEE_TIMEZONE")
    receipt_prefix: str = Field("REC", alias="RECEIPT_PREFIX")
    default_collector: str = Field("admin", alias="DEFAULT_COLLECTOR")
    reconcile_on_read: bool = Field(True, alias="RECONCILE_ON_READ")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
