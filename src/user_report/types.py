from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

UserRecord: TypeAlias = dict[str, Any]


def _as_text(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    return str(value)


class PurchasePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: float | int | str | None = None
    is_auto: bool | None = None
    currency: str | None = None
    invoice_id: str | None = None
    product_id: str | None = None
    product_title: str | None = None
    subscription_id: str | None = None

    @field_validator("is_auto", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> bool | None:
        # any truthy marker counts as an automatic renewal
        return None if value is None else bool(value)

    @field_validator("currency", "invoice_id", "product_id", "product_title", "subscription_id", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _as_text(value)


class PurchaseEvent(BaseModel):
    happened_at: datetime
    data: PurchasePayload


class CancelPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reason: str | None = None
    comment: str | None = None
    feedback: str | None = None

    @field_validator("reason", "comment", "feedback", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _as_text(value)


class CancelEvent(BaseModel):
    happened_at: datetime
    data: CancelPayload


class SurveyPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question: Any = None
    answers: list[Any] = Field(default_factory=list)

    @field_validator("answers", mode="before")
    @classmethod
    def default_answers(cls, value: Any) -> Any:
        return [] if value is None else value

    def joined(self) -> str:
        return ", ".join(str(answer) for answer in self.answers)


class ResumeApplyStats(BaseModel):
    success_applies: int = 0
    failed_applies: int = 0
    first_day_applies_count: int = 0
    first_week_applies_count: int = 0
    applies_start_date: datetime | None = None


@dataclass(slots=True, frozen=True)
class Skip:
    uid: str
    reason: str


UserOutcome: TypeAlias = UserRecord | Skip
