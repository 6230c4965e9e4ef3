from __future__ import annotations

import json
import logging

import typer

from user_report.config import get_settings
from user_report.core.aggregator import UserAggregator
from user_report.core.batch import build_report, json_default
from user_report.db.repositories import ApiRepository, BillingRepository
from user_report.db.session import open_data_sources, open_session
from user_report.logging_config import configure_logging

logger = logging.getLogger(__name__)

app = typer.Typer(help="Per-user analytics report")


@app.command("build")
def build_cmd() -> None:
    """Rebuild the full per-user report from all five sources."""
    configure_logging()
    settings = get_settings()
    try:
        sources = open_data_sources(settings)
        try:
            uids = BillingRepository(sources.billing).list_purchasing_uids()
            aggregator = UserAggregator.from_sources(sources, settings=settings)
            result = build_report(aggregator, uids, settings=settings)
        finally:
            sources.close()
    except Exception:
        logger.exception("Report build failed")
        raise typer.Exit(code=1)

    typer.echo(json.dumps({"ok": True, "records": len(result.records), "skipped": len(result.skipped)}, indent=2))


@app.command("duplicates")
def duplicates_cmd() -> None:
    """List users whose emails collide case-insensitively."""
    configure_logging()
    settings = get_settings()
    try:
        session = open_session("api", settings.api_db)
        try:
            pairs = ApiRepository(session).list_duplicate_emails()
        finally:
            session.close()
            session.get_bind().dispose()
    except Exception:
        logger.exception("Duplicate lookup failed")
        raise typer.Exit(code=1)

    typer.echo(json.dumps(pairs, indent=2, default=json_default))


if __name__ == "__main__":
    app()
