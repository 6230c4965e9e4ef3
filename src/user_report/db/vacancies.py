from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.collection import Collection

from user_report.types import ResumeApplyStats

# Placeholder vacancy id written for applications that never resolved to a vacancy.
EMPTY_VACANCY_ID = ObjectId("000000000000000000000000")


def truncate_to_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


class VacancyStatsRepository:
    def __init__(self, collection: Collection):
        self.collection = collection

    def _base_filter(self, resume_id: int) -> dict[str, Any]:
        return {"resumeId": resume_id, "vacancyId": {"$ne": EMPTY_VACANCY_ID}}

    def count_outcomes(self, resume_id: int) -> tuple[int, int]:
        """Return ``(responded, failed)`` counts for applications that got an answer."""
        pipeline = [
            {"$match": {**self._base_filter(resume_id), "respondedAt": {"$ne": None}}},
            {"$group": {"_id": "$isResponded", "count": {"$sum": 1}}},
        ]
        counts = {row["_id"]: row["count"] for row in self.collection.aggregate(pipeline)}
        return int(counts.get(True, 0)), int(counts.get(False, 0))

    def latest_success_day(self, resume_id: int) -> datetime | None:
        latest = self.collection.find_one(
            {**self._base_filter(resume_id), "isResponded": True},
            sort=[("respondedAt", DESCENDING)],
        )
        if not latest or not latest.get("respondedAt"):
            return None
        return truncate_to_day(latest["respondedAt"])

    def count_successes_between(self, resume_id: int, start: datetime, end: datetime) -> int:
        query = {
            **self._base_filter(resume_id),
            "isResponded": True,
            "respondedAt": {"$gte": start, "$lt": end},
        }
        return self.collection.count_documents(query)

    def resume_stats(self, resume_id: int) -> ResumeApplyStats:
        success, failed = self.count_outcomes(resume_id)
        start = self.latest_success_day(resume_id)
        if start is None:
            return ResumeApplyStats(success_applies=success, failed_applies=failed)

        # Both windows start at the latest success day, so the week count equals the day count.
        return ResumeApplyStats(
            success_applies=success,
            failed_applies=failed,
            first_day_applies_count=self.count_successes_between(resume_id, start, start + timedelta(days=1)),
            first_week_applies_count=self.count_successes_between(resume_id, start, start + timedelta(days=7)),
            applies_start_date=start,
        )
