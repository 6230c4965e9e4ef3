from __future__ import annotations

from sqlalchemy import JSON, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import DeclarativeBase

# Postgres column types with a generic fallback so the mirrors also run on SQLite.
TextArray = ARRAY(Text).with_variant(JSON(none_as_null=True), "sqlite")
JsonDocument = JSON(none_as_null=True).with_variant(JSONB(), "postgresql")


class ApiBase(DeclarativeBase):
    pass


class BillingBase(DeclarativeBase):
    pass


class AnalyticsBase(DeclarativeBase):
    pass


class SmtpBase(DeclarativeBase):
    pass


BASES: dict[str, type[DeclarativeBase]] = {
    "api": ApiBase,
    "billing": BillingBase,
    "analytics": AnalyticsBase,
    "smtp": SmtpBase,
}
