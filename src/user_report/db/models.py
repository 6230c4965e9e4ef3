"""Read-only mirrors of the tables the report queries.

Only the columns the report reads are mapped. The schemas themselves are
owned by the services that write them.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from user_report.db.base import AnalyticsBase, ApiBase, BillingBase, JsonDocument, SmtpBase, TextArray


# api


class User(ApiBase):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uid: Mapped[str] = mapped_column(String(128), index=True)
    first_name: Mapped[str | None] = mapped_column(String(120))
    last_name: Mapped[str | None] = mapped_column(String(120))
    email: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(String(255))
    phone_number: Mapped[str | None] = mapped_column(String(40))
    birth_date: Mapped[date | None] = mapped_column(Date)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    match_rate: Mapped[float | None] = mapped_column(Float)
    is_employed: Mapped[bool | None] = mapped_column(Boolean)


class GeneratedCv(ApiBase):
    __tablename__ = "generated_cv"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    file_url: Mapped[str | None] = mapped_column(String(500))
    source_hash: Mapped[str | None] = mapped_column(String(128))
    status: Mapped[str | None] = mapped_column(String(40))


class Resume(ApiBase):
    __tablename__ = "resume"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), index=True)
    serial_number: Mapped[str | None] = mapped_column(String(40))
    speciality: Mapped[str | None] = mapped_column(String(255))
    cv_file_url: Mapped[str | None] = mapped_column(String(500))
    status: Mapped[str | None] = mapped_column(String(40))
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    generated_cv_id: Mapped[int | None] = mapped_column(ForeignKey("generated_cv.id"))


class ResumeQuestion(ApiBase):
    __tablename__ = "resume_question"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    question: Mapped[str] = mapped_column(Text)


class ResumeAnswer(ApiBase):
    __tablename__ = "resume_answer"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    resume_id: Mapped[int] = mapped_column(ForeignKey("resume.id"), index=True)
    resume_question_id: Mapped[int] = mapped_column(ForeignKey("resume_question.id"))
    answer: Mapped[list[str] | None] = mapped_column(TextArray)


class UserQuestion(ApiBase):
    __tablename__ = "user_question"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    question: Mapped[str] = mapped_column(Text)
    serial_number: Mapped[int | None] = mapped_column(Integer)


class UserAnswer(ApiBase):
    __tablename__ = "user_answer"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), index=True)
    user_question_id: Mapped[int] = mapped_column(ForeignKey("user_question.id"))
    answer: Mapped[list[str] | None] = mapped_column(TextArray)


class UserMetrics(ApiBase):
    __tablename__ = "user_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uid: Mapped[str] = mapped_column(String(128), index=True)
    ext_uniq_id: Mapped[str | None] = mapped_column(String(255))


class UserSettings(ApiBase):
    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), unique=True)
    is_generate_cover_letter: Mapped[bool | None] = mapped_column(Boolean)


class PreloadedCv(ApiBase):
    __tablename__ = "preloaded_cv"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255))


class Vacancy(ApiBase):
    __tablename__ = "vacancy"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    site_host: Mapped[str | None] = mapped_column(String(255))


class ResumeVacancy(ApiBase):
    __tablename__ = "resume_vacancy"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    resume_id: Mapped[int] = mapped_column(ForeignKey("resume.id"), index=True)
    vacancy_id: Mapped[int] = mapped_column(ForeignKey("vacancy.id"))
    is_responded: Mapped[bool | None] = mapped_column(Boolean)


# billing


class Customer(BillingBase):
    __tablename__ = "customer"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uid: Mapped[str] = mapped_column(String(128), index=True)


class Purchase(BillingBase):
    __tablename__ = "purchase"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customer.id"), index=True)
    next_billing_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_canceled: Mapped[bool | None] = mapped_column(Boolean)


# analytics


class Event(AnalyticsBase):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uid: Mapped[str] = mapped_column(String(128), index=True)
    title: Mapped[str] = mapped_column(String(120), index=True)
    happened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    data: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument)


# smtp


class SmtpUser(SmtpBase):
    __tablename__ = "smtp_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uid: Mapped[str] = mapped_column(String(128), index=True)


class Message(SmtpBase):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    data: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument)


class ForwardedMessage(SmtpBase):
    __tablename__ = "forwarded_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uid: Mapped[str] = mapped_column(String(128), index=True)
    forward_from_message_id: Mapped[int | None] = mapped_column(ForeignKey("messages.id"))
