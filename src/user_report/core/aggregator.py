from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import Any

from user_report.config import Settings, get_settings
from user_report.core.flatten import flatten, join_answers, merge_metrics, strip_wrapping
from user_report.core.subscription import build_subscription, first_purchase
from user_report.db.repositories import (
    AnalyticsRepository,
    ApiRepository,
    BillingRepository,
    SmtpRepository,
)
from user_report.db.session import DataSources
from user_report.db.vacancies import VacancyStatsRepository
from user_report.types import (
    CancelEvent,
    CancelPayload,
    PurchaseEvent,
    PurchasePayload,
    Skip,
    SurveyPayload,
    UserOutcome,
)

logger = logging.getLogger(__name__)

GENERATED_CV_FIELDS = ("id", "created_at", "updated_at", "file_url", "source_hash", "status")


def as_count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def registered_on_or_after(moment: datetime | date | None, cutoff: date) -> bool:
    if moment is None:
        return False
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone(UTC)
        moment = moment.date()
    return moment >= cutoff


def prefix_url(base: str, path: str | None) -> str | None:
    if not path:
        return path
    return base + path


class UserAggregator:
    """Collects every report field for one user across the five sources."""

    def __init__(
        self,
        api: ApiRepository,
        billing: BillingRepository,
        analytics: AnalyticsRepository,
        smtp: SmtpRepository,
        vacancies: VacancyStatsRepository,
        *,
        settings: Settings | None = None,
    ):
        self.api = api
        self.billing = billing
        self.analytics = analytics
        self.smtp = smtp
        self.vacancies = vacancies
        self.settings = settings or get_settings()

    @classmethod
    def from_sources(cls, sources: DataSources, *, settings: Settings | None = None) -> UserAggregator:
        return cls(
            ApiRepository(sources.api),
            BillingRepository(sources.billing),
            AnalyticsRepository(sources.analytics),
            SmtpRepository(sources.smtp),
            VacancyStatsRepository(sources.vacancies),
            settings=settings,
        )

    def collect(self, uid: str) -> UserOutcome:
        separator = self.settings.field_separator
        resumes = self.collect_resumes(uid)

        profile = self.api.get_profile(uid)
        if profile is None:
            return Skip(uid, "profile not found")
        marker = self.settings.excluded_email_marker
        if marker and marker in (profile.get("email") or ""):
            return Skip(uid, f"email contains excluded marker '{marker}'")

        questions = self.collect_user_questions(uid)
        metrics = self.collect_metrics(uid)
        cover_letter_generation = self.api.get_cover_letter_preference(uid)

        purchases = [
            PurchaseEvent(happened_at=event.happened_at, data=PurchasePayload.model_validate(event.data or {}))
            for event in self.analytics.list_purchase_events(uid)
        ]
        baseline = first_purchase(purchases)
        cancel = None
        if baseline is not None:
            cancel_event = self.analytics.get_latest_cancel_event(uid)
            if cancel_event is not None:
                cancel = CancelEvent(
                    happened_at=cancel_event.happened_at,
                    data=CancelPayload.model_validate(cancel_event.data or {}),
                )
        subscription = build_subscription(purchases, cancel)
        is_active_subscriber = self.billing.has_active_purchase(uid)

        surveys = self.collect_surveys(uid)

        resume_load_on_register = None
        if registered_on_or_after(profile.get("register_date"), self.settings.preloaded_resume_cutoff):
            resume_load_on_register = self.api.has_preloaded_resume(uid)

        downloaded_before = downloaded_after = None
        if baseline is not None:
            downloaded_before, downloaded_after = self.analytics.resume_downloaded_around(
                uid, baseline.happened_at
            )

        resume_data = {f"r_{position}": resume for position, resume in enumerate(resumes, start=1)}

        invitations_count = self.smtp.count_invitations(uid, self.settings.invitation_marker)
        letters_count = self.smtp.count_forwarded_messages(uid)
        talent_count = self.api.count_site_success_applications(uid, self.settings.talent_site_host)

        return {
            **profile,
            "talentSuccessApplicationsCount": as_count(talent_count),
            "isActiveSubscriber": is_active_subscriber,
            **flatten({"question": questions}, separator=separator),
            **surveys,
            "coverletter_generation": cover_letter_generation,
            "resume_load_on_register": resume_load_on_register,
            "resume_downloaded_after_purchase": downloaded_after,
            "resume_downloaded_before_purchase": downloaded_before,
            **flatten(metrics, separator=separator),
            **flatten({"subscription": subscription}, separator=separator),
            **flatten(resume_data, separator=separator),
            "invitations_count": as_count(invitations_count),
            "lettersCount": as_count(letters_count),
        }

    def collect_resumes(self, uid: str) -> list[dict[str, Any]]:
        collected = []
        for resume in self.api.list_resumes(uid):
            resume["cv_file_url"] = prefix_url(self.settings.resume_file_base_url, resume["cv_file_url"])
            generated_cv = self.collect_generated_cv(resume)

            question: dict[str, str | None] = {}
            for title, answer in self.api.list_resume_answers(resume["id"]):
                if title is not None:
                    question[title] = join_answers(answer)

            stats = self.vacancies.resume_stats(resume["id"])
            collected.append(
                {
                    **resume,
                    "first_day_applies_count": stats.first_day_applies_count,
                    "first_week_applies_count": stats.first_week_applies_count,
                    "applies_start_date": stats.applies_start_date,
                    "generatedCv": generated_cv,
                    "question": question,
                    "successApplies": stats.success_applies,
                    "failedApplies": stats.failed_applies,
                }
            )
        return collected

    def collect_generated_cv(self, resume: dict[str, Any]) -> dict[str, Any]:
        placeholder = dict.fromkeys(GENERATED_CV_FIELDS)
        if not resume.get("generated_cv_id"):
            return placeholder

        generated_cv = self.api.get_generated_cv(resume["id"])
        if generated_cv is None:
            logger.debug("Resume %s links missing generated cv %s", resume["id"], resume["generated_cv_id"])
            return placeholder
        generated_cv["file_url"] = prefix_url(self.settings.generated_cv_base_url, generated_cv["file_url"])
        return generated_cv

    def collect_user_questions(self, uid: str) -> dict[str, str | None]:
        answers: dict[str, str | None] = {}
        for title, answer in self.api.list_user_answers(uid):
            if title is not None and title not in answers:
                answers[title] = join_answers(answer)
        return {title: answers.get(title) for title in self.api.list_question_titles()}

    def collect_metrics(self, uid: str) -> dict[str, Any]:
        metrics = merge_metrics(self.analytics.list_metric_payloads(uid))
        if not metrics["yid"]:
            metrics["yid"] = strip_wrapping(self.api.get_legacy_tracking_id(uid))
        return metrics

    def collect_surveys(self, uid: str) -> dict[str, str | None]:
        surveys: dict[str, str | None] = {"nps_1": None, "nps_2": None}
        for event in self.analytics.list_survey_events(uid):
            if event.title in surveys and surveys[event.title] is None:
                payload = SurveyPayload.model_validate(event.data or {})
                surveys[event.title] = payload.joined()
        return surveys
