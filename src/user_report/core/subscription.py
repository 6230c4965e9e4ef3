from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from user_report.types import CancelEvent, PurchaseEvent

SUBSCRIPTION_FIELDS = (
    "firstPurchaseDate",
    "subscriptionType",
    "subscriptionId",
    "subscriptionInvoice",
    "productId",
    "productTitle",
    "price",
    "autoBillings",
)
CANCEL_FIELDS = ("date", "reason", "comment", "feedback")


def isoformat_utc(value: datetime) -> str:
    """Render as ``YYYY-MM-DDTHH:MM:SS.mmmZ``; naive values are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def format_amount(value: float | int | str | None) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_price(event: PurchaseEvent) -> str:
    return f"{format_amount(event.data.value)} {event.data.currency}"


def format_auto_billing(event: PurchaseEvent) -> str:
    return (
        f"{event.data.invoice_id}:{format_amount(event.data.value)} {event.data.currency}"
        f":{isoformat_utc(event.happened_at)}"
    )


def empty_subscription() -> dict[str, Any]:
    subscription: dict[str, Any] = dict.fromkeys(SUBSCRIPTION_FIELDS)
    subscription["cancel"] = dict.fromkeys(CANCEL_FIELDS)
    return subscription


def first_purchase(events: Sequence[PurchaseEvent]) -> PurchaseEvent | None:
    return next((event for event in events if not event.data.is_auto), None)


def build_subscription(events: Sequence[PurchaseEvent], cancel: CancelEvent | None) -> dict[str, Any]:
    """Derive the single subscription state of a user from their purchase log.

    Without a non-automatic purchase every field is null, the cancel
    sub-record included, regardless of any cancellation event.
    """
    baseline = first_purchase(events)
    if baseline is None:
        return empty_subscription()

    auto_billings = [format_auto_billing(event) for event in events if event.data.is_auto]
    subscription: dict[str, Any] = {
        "firstPurchaseDate": baseline.happened_at,
        "subscriptionType": baseline.data.product_title,
        "subscriptionId": baseline.data.subscription_id,
        "subscriptionInvoice": baseline.data.invoice_id,
        "productId": baseline.data.product_id,
        "productTitle": baseline.data.product_title,
        "price": format_price(baseline),
        "autoBillings": "\n".join(auto_billings),
    }
    if cancel is None:
        subscription["cancel"] = dict.fromkeys(CANCEL_FIELDS)
    else:
        subscription["cancel"] = {
            "date": cancel.happened_at,
            "reason": cancel.data.reason or None,
            "comment": cancel.data.comment or None,
            "feedback": cancel.data.feedback or None,
        }
    return subscription
