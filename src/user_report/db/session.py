from __future__ import annotations

import logging
from dataclasses import dataclass

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from user_report.config import Settings, get_settings

logger = logging.getLogger(__name__)


class SourceConnectionError(RuntimeError):
    def __init__(self, source: str, cause: Exception):
        super().__init__(f"could not connect to the {source} source: {cause}")
        self.source = source


@dataclass(slots=True)
class DataSources:
    api: Session
    billing: Session
    analytics: Session
    smtp: Session
    vacancies_client: MongoClient
    vacancies: Collection

    def close(self) -> None:
        for session in (self.api, self.billing, self.analytics, self.smtp):
            session.close()
            session.get_bind().dispose()
        self.vacancies_client.close()


def open_session(name: str, url: str) -> Session:
    engine = None
    try:
        engine = create_engine(url, future=True)
        session = Session(bind=engine, autoflush=False, future=True)
        try:
            session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            session.close()
            raise
    except SQLAlchemyError as exc:
        if engine is not None:
            engine.dispose()
        raise SourceConnectionError(name, exc) from exc
    logger.info("Connected to %s source", name)
    return session


def open_vacancies(settings: Settings) -> tuple[MongoClient, Collection]:
    client: MongoClient | None = None
    try:
        client = MongoClient(settings.vacancies_db)
        client.admin.command("ping")
    except PyMongoError as exc:
        if client is not None:
            client.close()
        raise SourceConnectionError("vacancies", exc) from exc
    logger.info("Connected to vacancies source (database: %s)", settings.vacancies_db_name)
    collection = client[settings.vacancies_db_name][settings.vacancies_collection]
    return client, collection


def open_data_sources(settings: Settings | None = None) -> DataSources:
    """Open all five sources, failing the whole run if any of them is unreachable."""
    settings = settings or get_settings()
    opened: list[Session] = []
    try:
        for name, url in settings.relational_urls.items():
            opened.append(open_session(name, url))
        client, collection = open_vacancies(settings)
    except SourceConnectionError:
        for session in opened:
            session.close()
            session.get_bind().dispose()
        raise

    api, billing, analytics, smtp = opened
    return DataSources(
        api=api,
        billing=billing,
        analytics=analytics,
        smtp=smtp,
        vacancies_client=client,
        vacancies=collection,
    )
