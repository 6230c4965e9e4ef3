from __future__ import annotations

import json
from datetime import datetime

from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from typer.testing import CliRunner

from user_report.cli.app import app
from user_report.config import get_settings
from user_report.core.batch import build_report
from user_report.db.base import ApiBase
from user_report.db.models import Customer, GeneratedCv, Purchase, Resume, User
from user_report.db.repositories import BillingRepository


def _seed_subscriber(sources, add_event) -> None:
    user = User(
        uid="u-1",
        email="jane@example.com",
        first_name="Jane",
        created_at=datetime(2024, 6, 1, 9, 0),
    )
    sources.api.add(user)
    sources.api.add(GeneratedCv(id=3, file_url="generated/3.pdf", status="ready"))
    sources.api.flush()
    sources.api.add_all(
        [
            Resume(id=2, user_id=user.id, serial_number="B", cv_file_url="b.pdf"),
            Resume(id=1, user_id=user.id, serial_number="A", cv_file_url="a.pdf", generated_cv_id=3),
        ]
    )
    sources.api.commit()

    customer = Customer(uid="u-1")
    sources.billing.add(customer)
    sources.billing.flush()
    sources.billing.add(Purchase(customer_id=customer.id, next_billing_at=datetime(2999, 1, 1), is_canceled=True))
    sources.billing.commit()

    add_event("u-1", "resume_download", datetime(2024, 6, 5))
    add_event(
        "u-1",
        "purchase",
        datetime(2024, 6, 10, 12, 0),
        {
            "is_auto": False,
            "value": 29.99,
            "currency": "USD",
            "invoice_id": "inv-1",
            "product_id": "monthly",
            "product_title": "Monthly plan",
            "subscription_id": "sub-1",
        },
    )
    add_event(
        "u-1",
        "subscription_cancel",
        datetime(2024, 6, 20, 8, 30),
        {"reason": "found_job", "comment": "thanks", "feedback": ""},
    )


def test_subscriber_with_two_resumes_and_cancellation(sources, aggregator, add_event) -> None:
    _seed_subscriber(sources, add_event)

    record = aggregator.collect("u-1")

    assert record["r_1_serial_number"] == "A"
    assert record["r_2_serial_number"] == "B"
    assert list(record).index("r_1_id") < list(record).index("r_2_id")
    assert record["subscription_firstPurchaseDate"] == datetime(2024, 6, 10, 12, 0)
    assert record["subscription_price"] == "29.99 USD"
    assert record["subscription_autoBillings"] == ""
    assert record["subscription_cancel_date"] == datetime(2024, 6, 20, 8, 30)
    assert record["subscription_cancel_reason"] == "found_job"
    assert record["subscription_cancel_feedback"] is None
    assert record["isActiveSubscriber"] is False
    assert record["resume_downloaded_before_purchase"] is True
    assert record["resume_downloaded_after_purchase"] is False
    assert record["resume_load_on_register"] is False
    assert record["invitations_count"] == 0
    assert record["lettersCount"] == 0


def test_report_file_only_holds_records_of_the_expected_shape(sources, aggregator, add_event, settings) -> None:
    _seed_subscriber(sources, add_event)
    sources.api.add(User(uid="u-2", email="solo@example.com", created_at=datetime(2024, 1, 1)))
    sources.api.add(User(uid="u-3", email="qa@hotger.com", created_at=datetime(2024, 1, 1)))
    sources.api.commit()
    for uid in ("u-2", "u-3"):
        customer = Customer(uid=uid)
        sources.billing.add(customer)
        sources.billing.flush()
        sources.billing.add(Purchase(customer_id=customer.id, next_billing_at=datetime(2000, 1, 1)))
    sources.billing.commit()

    uids = BillingRepository(sources.billing).list_purchasing_uids()
    full_shape = len(aggregator.collect("u-1"))
    aggregator.settings = settings.model_copy(update={"expected_field_count": full_shape})

    result = build_report(aggregator, uids, settings=aggregator.settings)

    written = json.loads(settings.output_path.read_text(encoding="utf-8"))
    assert [record["uid"] for record in written] == ["u-1"]
    assert all(len(record) == full_shape for record in written)
    assert written[0]["subscription_cancel_date"] == "2024-06-20T08:30:00.000Z"
    assert [skip.uid for skip in result.skipped] == ["u-3"]


def test_duplicates_command_prints_colliding_accounts(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr("user_report.cli.app.configure_logging", lambda: None)
    db_url = f"sqlite:///{tmp_path / 'api.db'}"
    engine = create_engine(db_url, future=True)
    ApiBase.metadata.create_all(bind=engine)
    with Session(engine) as session:
        session.add_all(
            [
                User(uid="u-a", email="Jane@Example.com"),
                User(uid="u-b", email="jane@example.com"),
            ]
        )
        session.commit()
    engine.dispose()

    monkeypatch.setenv("API_DB", db_url)
    get_settings.cache_clear()
    try:
        result = CliRunner().invoke(app, ["duplicates"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [
        {
            "email": "jane@example.com",
            "uid1": "u-b",
            "uid2": "u-a",
            "email1": "jane@example.com",
            "email2": "Jane@Example.com",
        }
    ]


def test_build_command_exits_non_zero_when_a_source_is_unreachable(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr("user_report.cli.app.configure_logging", lambda: None)
    monkeypatch.setenv("OUTPUT_PATH", str(tmp_path / "users-data.json"))
    monkeypatch.setenv("API_DB", f"sqlite:///{tmp_path / 'missing' / 'api.db'}")
    get_settings.cache_clear()
    try:
        result = CliRunner().invoke(app, ["build"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 1
    assert not (tmp_path / "users-data.json").exists()
