from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Text, and_, cast, func, literal, or_, select
from sqlalchemy.orm import Session, aliased

from user_report.db.models import (
    Customer,
    Event,
    ForwardedMessage,
    GeneratedCv,
    Message,
    PreloadedCv,
    Purchase,
    Resume,
    ResumeAnswer,
    ResumeQuestion,
    ResumeVacancy,
    SmtpUser,
    User,
    UserAnswer,
    UserMetrics,
    UserQuestion,
    UserSettings,
    Vacancy,
)

PURCHASE_EVENT = "purchase"
CANCEL_EVENT = "subscription_cancel"
RESUME_DOWNLOAD_EVENT = "resume_download"
METRIC_EVENTS = ("register", "email_retention")
SURVEY_EVENTS = ("nps_1", "nps_2")


class ApiRepository:
    def __init__(self, session: Session):
        self.session = session

    def list_resumes(self, uid: str) -> list[dict[str, Any]]:
        statement = (
            select(
                Resume.id,
                Resume.serial_number,
                Resume.speciality,
                Resume.cv_file_url,
                Resume.status,
                Resume.created_at,
                Resume.updated_at,
                Resume.generated_cv_id,
            )
            .join(User, Resume.user_id == User.id)
            .where(User.uid == uid)
            .order_by(Resume.serial_number.asc(), Resume.id.asc())
        )
        return [dict(row) for row in self.session.execute(statement).mappings()]

    def get_generated_cv(self, resume_id: int) -> dict[str, Any] | None:
        statement = (
            select(
                GeneratedCv.id,
                GeneratedCv.created_at,
                GeneratedCv.updated_at,
                GeneratedCv.file_url,
                GeneratedCv.source_hash,
                GeneratedCv.status,
            )
            .join(Resume, Resume.generated_cv_id == GeneratedCv.id)
            .where(Resume.id == resume_id)
        )
        row = self.session.execute(statement).mappings().first()
        return dict(row) if row else None

    def list_resume_answers(self, resume_id: int) -> list[tuple[str | None, list[str] | None]]:
        statement = (
            select(ResumeQuestion.question, ResumeAnswer.answer)
            .select_from(ResumeAnswer)
            .outerjoin(ResumeQuestion, ResumeAnswer.resume_question_id == ResumeQuestion.id)
            .where(ResumeAnswer.resume_id == resume_id)
            .order_by(ResumeQuestion.id.asc())
        )
        return [(row.question, row.answer) for row in self.session.execute(statement)]

    def get_profile(self, uid: str) -> dict[str, Any] | None:
        statement = select(
            User.id,
            User.uid,
            User.first_name,
            User.last_name,
            User.email,
            User.address,
            User.phone_number,
            User.birth_date,
            User.created_at.label("register_date"),
            User.updated_at,
            User.match_rate,
            User.is_employed,
        ).where(User.uid == uid)
        row = self.session.execute(statement).mappings().first()
        return dict(row) if row else None

    def list_question_titles(self) -> list[str]:
        statement = select(UserQuestion.question).order_by(UserQuestion.id.asc())
        return list(self.session.scalars(statement).all())

    def list_user_answers(self, uid: str) -> list[tuple[str | None, list[str]]]:
        statement = (
            select(UserQuestion.question, UserAnswer.answer)
            .select_from(UserAnswer)
            .join(User, UserAnswer.user_id == User.id)
            .outerjoin(UserQuestion, UserAnswer.user_question_id == UserQuestion.id)
            .where(User.uid == uid, UserAnswer.answer.is_not(None))
            .order_by(UserQuestion.serial_number.asc())
        )
        return [(row.question, row.answer) for row in self.session.execute(statement)]

    def get_legacy_tracking_id(self, uid: str) -> str | None:
        statement = select(UserMetrics.ext_uniq_id).where(UserMetrics.uid == uid).limit(1)
        return self.session.scalar(statement)

    def get_cover_letter_preference(self, uid: str) -> bool | None:
        statement = (
            select(UserSettings.is_generate_cover_letter)
            .join(User, UserSettings.user_id == User.id)
            .where(User.uid == uid)
            .limit(1)
        )
        return self.session.scalar(statement)

    def has_preloaded_resume(self, uid: str) -> bool:
        statement = (
            select(literal(1))
            .select_from(User)
            .join(PreloadedCv, func.lower(User.email) == func.lower(PreloadedCv.email))
            .where(User.uid == uid)
            .limit(1)
        )
        return self.session.scalar(statement) == 1

    def count_site_success_applications(self, uid: str, site_host: str) -> int:
        statement = (
            select(func.count(ResumeVacancy.id))
            .select_from(ResumeVacancy)
            .join(Vacancy, ResumeVacancy.vacancy_id == Vacancy.id)
            .join(Resume, ResumeVacancy.resume_id == Resume.id)
            .join(User, Resume.user_id == User.id)
            .where(
                User.uid == uid,
                ResumeVacancy.is_responded.is_(True),
                Vacancy.site_host == site_host,
            )
        )
        return self.session.scalar(statement) or 0

    def list_duplicate_emails(self) -> list[dict[str, Any]]:
        first = aliased(User)
        second = aliased(User)
        email = func.lower(first.email).label("email")
        uid1 = first.uid.label("uid1")
        uid2 = second.uid.label("uid2")
        statement = (
            select(email, uid1, uid2, first.email.label("email1"), second.email.label("email2"))
            .distinct()
            .select_from(first)
            .join(second, func.lower(first.email) == func.lower(second.email))
            .where(first.uid > second.uid)
            .order_by(email, uid1, uid2)
        )
        return [dict(row) for row in self.session.execute(statement).mappings()]


class BillingRepository:
    def __init__(self, session: Session):
        self.session = session

    def list_purchasing_uids(self) -> list[str]:
        statement = (
            select(Customer.uid)
            .distinct()
            .join(Purchase, Purchase.customer_id == Customer.id)
            .order_by(Customer.uid)
        )
        return list(self.session.scalars(statement).all())

    def has_active_purchase(self, uid: str) -> bool:
        statement = (
            select(func.count(Purchase.id))
            .join(Customer, Purchase.customer_id == Customer.id)
            .where(
                Customer.uid == uid,
                Purchase.next_billing_at > func.now(),
                or_(Purchase.is_canceled.is_(False), Purchase.is_canceled.is_(None)),
            )
        )
        return (self.session.scalar(statement) or 0) >= 1


class AnalyticsRepository:
    def __init__(self, session: Session):
        self.session = session

    def _events(self, uid: str, titles: Sequence[str]) -> list[Event]:
        statement = (
            select(Event)
            .where(Event.uid == uid, Event.title.in_(titles))
            .order_by(Event.happened_at.asc(), Event.id.asc())
        )
        return list(self.session.scalars(statement).all())

    def list_metric_payloads(self, uid: str) -> list[dict[str, Any]]:
        return [event.data or {} for event in self._events(uid, METRIC_EVENTS)]

    def list_purchase_events(self, uid: str) -> list[Event]:
        return self._events(uid, (PURCHASE_EVENT,))

    def get_latest_cancel_event(self, uid: str) -> Event | None:
        events = self._events(uid, (CANCEL_EVENT,))
        return events[-1] if events else None

    def list_survey_events(self, uid: str) -> list[Event]:
        return self._events(uid, SURVEY_EVENTS)

    def resume_downloaded_around(self, uid: str, moment: datetime) -> tuple[bool, bool]:
        """Return whether a resume download happened strictly before / after ``moment``."""
        base = and_(Event.uid == uid, Event.title == RESUME_DOWNLOAD_EVENT)
        before = self.session.scalar(
            select(literal(1)).select_from(Event).where(base, Event.happened_at < moment).limit(1)
        )
        after = self.session.scalar(
            select(literal(1)).select_from(Event).where(base, Event.happened_at > moment).limit(1)
        )
        return before == 1, after == 1


class SmtpRepository:
    def __init__(self, session: Session):
        self.session = session

    def count_invitations(self, uid: str, marker: str) -> int:
        statement = (
            select(func.count(Message.id))
            .select_from(SmtpUser)
            .outerjoin(ForwardedMessage, SmtpUser.uid == ForwardedMessage.uid)
            .outerjoin(Message, ForwardedMessage.forward_from_message_id == Message.id)
            .where(SmtpUser.uid == uid, cast(Message.data, Text).like(f"%{marker}%"))
        )
        return self.session.scalar(statement) or 0

    def count_forwarded_messages(self, uid: str) -> int:
        statement = select(func.count(ForwardedMessage.id)).where(ForwardedMessage.uid == uid)
        return self.session.scalar(statement) or 0
