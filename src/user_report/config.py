from __future__ import annotations

import logging
from datetime import date
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "user-report"
    log_level: str = "INFO"

    api_db: str = "postgresql+psycopg://localhost/api"
    billing_db: str = "postgresql+psycopg://localhost/billing"
    analytics_db: str = "postgresql+psycopg://localhost/analytics"
    smtp_db: str = "postgresql+psycopg://localhost/smtp"
    vacancies_db: str = "mongodb://localhost:27017"
    vacancies_db_name: str = "vacancy_storage"
    vacancies_collection: str = "resumeVacancy"

    resume_file_base_url: str = "https://api.jobhire.ai/"
    generated_cv_base_url: str = "http://5.161.185.218:4004/"
    excluded_email_marker: str = "hotger"
    invitation_marker: str = "calendly.com"
    talent_site_host: str = "www.talent.com"
    preloaded_resume_cutoff: date = date(2024, 5, 15)

    output_path: Path = Path("users-data.json")
    expected_field_count: int | None = 126
    field_separator: str = "_"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        if not isinstance(logging.getLevelName(value.upper()), int):
            raise ValueError(f"unknown log level '{value}'")
        return value.upper()

    @field_validator("expected_field_count", mode="before")
    @classmethod
    def validate_expected_field_count(cls, value: object) -> object:
        if value == "":
            return None
        return value

    @field_validator("expected_field_count")
    @classmethod
    def validate_positive_field_count(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("expected_field_count must be positive")
        return value

    @property
    def relational_urls(self) -> dict[str, str]:
        return {
            "api": self.api_db,
            "billing": self.billing_db,
            "analytics": self.analytics_db,
            "smtp": self.smtp_db,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
