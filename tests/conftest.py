from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime

import mongomock
import pytest
from pymongo.collection import Collection
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from user_report.config import Settings
from user_report.core.aggregator import UserAggregator
from user_report.db.base import BASES
from user_report.db import models


@dataclass
class FakeSources:
    api: Session
    billing: Session
    analytics: Session
    smtp: Session
    vacancies: Collection


@pytest.fixture
def sources() -> Iterator[FakeSources]:
    sessions: dict[str, Session] = {}
    for name, base in BASES.items():
        engine = create_engine("sqlite://", future=True)
        base.metadata.create_all(bind=engine)
        sessions[name] = Session(bind=engine, autoflush=False, future=True)

    collection = mongomock.MongoClient()["vacancy_storage"]["resumeVacancy"]
    yield FakeSources(vacancies=collection, **sessions)

    for session in sessions.values():
        session.close()
        session.get_bind().dispose()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(output_path=tmp_path / "users-data.json", expected_field_count=None)


@pytest.fixture
def aggregator(sources: FakeSources, settings: Settings) -> UserAggregator:
    return UserAggregator.from_sources(sources, settings=settings)


@pytest.fixture
def make_user(sources: FakeSources):
    def _make(uid: str = "u-1", email: str = "jane@example.com", **fields) -> models.User:
        values = {
            "first_name": "Jane",
            "last_name": "Doe",
            "created_at": datetime(2024, 6, 1, 9, 0),
            "updated_at": datetime(2024, 6, 2, 9, 0),
        }
        values.update(fields)
        user = models.User(uid=uid, email=email, **values)
        sources.api.add(user)
        sources.api.commit()
        return user

    return _make


@pytest.fixture
def add_event(sources: FakeSources):
    def _add(uid: str, title: str, happened_at: datetime, data: dict | None = None) -> models.Event:
        event = models.Event(uid=uid, title=title, happened_at=happened_at, data=data or {})
        sources.analytics.add(event)
        sources.analytics.commit()
        return event

    return _add
