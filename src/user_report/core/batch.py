from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

from user_report.config import Settings, get_settings
from user_report.core.aggregator import UserAggregator
from user_report.core.subscription import isoformat_utc
from user_report.types import Skip, UserOutcome, UserRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BatchResult:
    records: list[UserRecord] = field(default_factory=list)
    skipped: list[Skip] = field(default_factory=list)


def json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return isoformat_utc(value)
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "__float__"):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def collect_user(aggregator: UserAggregator, uid: str) -> UserOutcome:
    try:
        return aggregator.collect(uid)
    except Exception as exc:
        logger.exception("Failed to collect report data for %s", uid)
        return Skip(uid, f"{type(exc).__name__}: {exc}")


def run_batch(aggregator: UserAggregator, uids: Iterable[str], *, expected_field_count: int | None) -> BatchResult:
    result = BatchResult()
    for uid in uids:
        started = time.perf_counter()
        outcome = collect_user(aggregator, uid)
        if isinstance(outcome, Skip):
            logger.info("%s skipped: %s", outcome.uid, outcome.reason)
            result.skipped.append(outcome)
            continue

        result.records.append(outcome)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info("%s done in %sms, keys: %s", uid, elapsed_ms, len(outcome))
        if expected_field_count is not None and len(outcome) != expected_field_count:
            logger.debug("%s has an unexpected shape:\n%s", uid, "\n".join(outcome))
    return result


def filter_by_field_count(records: Iterable[UserRecord], expected_field_count: int | None) -> list[UserRecord]:
    if expected_field_count is None:
        return list(records)
    return [record for record in records if len(record) == expected_field_count]


def write_report(records: list[UserRecord], path: Path) -> Path:
    path = path.resolve()
    path.write_text(json.dumps(records, indent=2, default=json_default, ensure_ascii=False), encoding="utf-8")
    return path


def build_report(aggregator: UserAggregator, uids: list[str], *, settings: Settings | None = None) -> BatchResult:
    """Collect every candidate, keep the well-shaped records and write them out."""
    settings = settings or get_settings()
    logger.info("Total: %s", len(uids))

    result = run_batch(aggregator, uids, expected_field_count=settings.expected_field_count)
    records = filter_by_field_count(result.records, settings.expected_field_count)
    path = write_report(records, settings.output_path)
    logger.info(
        "Wrote %s records to %s (%s dropped by field count, %s skipped)",
        len(records),
        path,
        len(result.records) - len(records),
        len(result.skipped),
    )
    return BatchResult(records=records, skipped=result.skipped)
