import json
from datetime import date, datetime
from decimal import Decimal

import pytest

from user_report.config import Settings
from user_report.core.batch import build_report, filter_by_field_count, json_default, run_batch
from user_report.types import Skip


class StubAggregator:
    def __init__(self, outcomes: dict) -> None:
        self.outcomes = outcomes
        self.calls: list[str] = []

    def collect(self, uid: str):
        self.calls.append(uid)
        outcome = self.outcomes[uid]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def test_run_batch_skips_failures_and_keeps_candidate_order() -> None:
    aggregator = StubAggregator(
        {
            "u-1": {"uid": "u-1"},
            "u-2": RuntimeError("query timed out"),
            "u-3": Skip("u-3", "profile not found"),
            "u-4": {"uid": "u-4"},
        }
    )
    result = run_batch(aggregator, ["u-1", "u-2", "u-3", "u-4"], expected_field_count=None)

    assert aggregator.calls == ["u-1", "u-2", "u-3", "u-4"]
    assert [record["uid"] for record in result.records] == ["u-1", "u-4"]
    assert [skip.uid for skip in result.skipped] == ["u-2", "u-3"]
    assert result.skipped[0].reason == "RuntimeError: query timed out"


def test_filter_by_field_count() -> None:
    records = [{"a": 1, "b": 2}, {"a": 1}, {"a": 1, "b": 2, "c": 3}]
    assert filter_by_field_count(records, 2) == [{"a": 1, "b": 2}]
    assert filter_by_field_count(records, None) == records


def test_json_default_renders_dates_and_decimals() -> None:
    assert json_default(datetime(2024, 6, 1, 12, 0)) == "2024-06-01T12:00:00.000Z"
    assert json_default(date(1990, 2, 3)) == "1990-02-03"
    assert json_default(Decimal("0.75")) == 0.75
    with pytest.raises(TypeError):
        json_default(object())


def test_build_report_writes_only_well_shaped_records(tmp_path) -> None:
    output = tmp_path / "report.json"
    output.write_text("stale", encoding="utf-8")
    aggregator = StubAggregator(
        {
            "u-1": {"uid": "u-1", "register_date": datetime(2024, 6, 1)},
            "u-2": {"uid": "u-2"},
            "u-3": ValueError("bad payload"),
        }
    )
    settings = Settings(output_path=output, expected_field_count=2)

    result = build_report(aggregator, ["u-1", "u-2", "u-3"], settings=settings)

    assert [record["uid"] for record in result.records] == ["u-1"]
    assert len(result.skipped) == 1
    written = json.loads(output.read_text(encoding="utf-8"))
    assert written == [{"uid": "u-1", "register_date": "2024-06-01T00:00:00.000Z"}]
    assert output.read_text(encoding="utf-8").startswith("[\n  {")
