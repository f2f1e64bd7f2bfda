import json
import random
from pathlib import Path

import typer
from sqlalchemy.orm import Session

from callboard.core.config import settings
from callboard.core.database import Base, SessionLocal, engine
from callboard.services.analytics import build_dashboard
from callboard.services.ingestion import InvalidPayload, store_call_data
from callboard.services.store import SqlCallStore, StorageFailure, get_calls_for_timeframe

app = typer.Typer()


@app.command()
def init_db():
    Base.metadata.create_all(bind=engine)
    typer.echo("Calls table ready")


@app.command()
def ingest(path: Path):
    try:
        payload = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        typer.echo(f"Cannot read payload: {exc}", err=True)
        raise typer.Exit(code=1)
    db: Session = SessionLocal()
    try:
        stored = store_call_data(
            SqlCallStore(db), payload, require_start_time=settings.require_start_time
        )
    except (InvalidPayload, StorageFailure) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    finally:
        db.close()
    typer.echo(f"Stored call {stored.call_id} as {stored.id}")


@app.command()
def report(days: int = typer.Option(7, min=0, max=settings.max_days)):
    db: Session = SessionLocal()
    try:
        calls = get_calls_for_timeframe(SqlCallStore(db), days)
    finally:
        db.close()
    view = build_dashboard(
        calls,
        days,
        rng=random.Random(settings.compliance_seed),
        recent_limit=settings.recent_calls_limit,
    )
    typer.echo(view.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    app()
