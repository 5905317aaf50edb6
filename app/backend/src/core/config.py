"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    database_url: str = Field(
        default="sqlite:///./worklog.db", alias="DATABASE_URL"
    )
    gst_registered: bool = Field(default=False, alias="GST_REGISTERED")
    billing_company_name: str | None = Field(
        default=None, alias="BILLING_COMPANY_NAME"
    )
    billing_abn: str | None = Field(default=None, alias="BILLING_ABN")
    billing_acn: str | None = Field(default=None, alias="BILLING_ACN")
    billing_bank: str | None = Field(default=None, alias="BILLING_BANK")
    billing_account_name: str | None = Field(
        default=None, alias="BILLING_ACCOUNT_NAME"
    )
    billing_account_number: str | None = Field(
        default=None, alias="BILLING_ACCOUNT_NUMBER"
    )
    billing_bsb: str | None = Field(default=None, alias="BILLING_BSB")
    invoice_output_dir: str = Field(
        default="storage/invoices", alias="INVOICE_OUTPUT_DIR"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
