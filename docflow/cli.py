"""
docflow command line.

Commands:
- worker <stage>: consume one stage topic until SIGTERM/SIGINT
- ingest <provider> <bucket> <key>: ingest one object
- ingest-notification <file>: ingest every object in a storage notification
- api: serve the retrieval API

Dependencies: typer, uvicorn, python-dotenv, docflow.dependencies
System role: Process entry points
"""

import json
import logging
from pathlib import Path

import typer
from dotenv import load_dotenv

from docflow.core.exceptions import DocflowError
from docflow.core.pipeline.models.document import SourceRef
from docflow.core.pipeline.stages import STAGES
from docflow.dependencies import get_container
from docflow.observability.logger import configure_logging

load_dotenv()

app = typer.Typer(help="docflow: PDF ingestion pipeline and retrieval API")
logger = logging.getLogger(__name__)


@app.callback()
def main(
    log_level: str = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """Configure logging for every command."""
    configure_logging(log_level or get_container().settings.log_level)


@app.command()
def worker(
    stage: str = typer.Argument(..., help=f"One of: {', '.join(STAGES)}"),
    concurrency: int = typer.Option(None, help="Consumer threads (default: one per partition)"),
):
    """Run one stage worker until interrupted."""
    if stage not in STAGES:
        typer.secho(f"Unknown stage {stage!r}; expected one of {', '.join(STAGES)}", fg="red")
        raise typer.Exit(2)

    runner = get_container().runner(stage, concurrency=concurrency)
    runner.install_signal_handlers()
    runner.run()


@app.command()
def ingest(
    provider: str = typer.Argument(..., help="gcs, s3 or minio"),
    bucket: str = typer.Argument(...),
    key: str = typer.Argument(...),
    version: str = typer.Option(None, help="Object version / generation"),
    trace_id: str = typer.Option(None, help="Trace id to thread through the run"),
):
    """Ingest one object and emit its pdf-ingest event."""
    try:
        source = SourceRef(provider=provider, bucket=bucket, key=key, version=version)
    except ValueError as e:
        typer.secho(f"Invalid object reference: {e}", fg="red")
        raise typer.Exit(2)

    outcome = get_container().worker("ingest").ingest(source, trace_id=trace_id)
    typer.echo(outcome.model_dump_json())
    if outcome.status == "failed":
        raise typer.Exit(1)


@app.command("ingest-notification")
def ingest_notification(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Notification JSON file"),
):
    """Ingest every PDF referenced by an S3, MinIO or GCS notification."""
    body = json.loads(path.read_text())
    try:
        outcomes = get_container().worker("ingest").ingest_notification(body)
    except DocflowError as e:
        typer.secho(f"Could not read notification: {e}", fg="red")
        raise typer.Exit(2)

    for outcome in outcomes:
        typer.echo(outcome.model_dump_json())
    if any(o.status == "failed" for o in outcomes):
        raise typer.Exit(1)


@app.command()
def api(
    host: str = typer.Option(None, help="Bind address"),
    port: int = typer.Option(None, help="Bind port"),
):
    """Serve the retrieval API with uvicorn."""
    import uvicorn

    settings = get_container().settings.api
    uvicorn.run(
        "docflow.api.main:app",
        host=host or settings.host,
        port=port or settings.port,
    )


if __name__ == "__main__":
    app()
