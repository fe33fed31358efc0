import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from s3_loader.config import get_settings
from s3_loader.dynamic_path import decorate_path as _decorate_path
from s3_loader.emitter import S3Emitter
from s3_loader.errors import ConfigurationError
from s3_loader.models import NamedStream
from s3_loader.monitoring import build_monitoring

app = typer.Typer(help="S3 loader CLI (delivery, key preview, settings)")

_SECRETS = {"SENTRY_DSN"}


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


@app.command()
def upload(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to deliver"),
    filename: Optional[str] = typer.Option(None, "--filename", help="Object name (default: file name)"),
    directory: Optional[str] = typer.Option(None, "--directory", help="Extra key directory"),
    bucket: Optional[str] = typer.Option(None, "--bucket", help="Override S3_BUCKET"),
):
    """Deliver FILE to S3, retrying until it succeeds or the loader gives up."""
    settings = get_settings()
    _configure_logging(settings.LOG_LEVEL)
    monitoring = build_monitoring(settings)
    try:
        emitter = S3Emitter.from_settings(settings, monitoring=monitoring)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        monitoring.close()
        sys.exit(2)
    monitoring.initialize()

    stream = NamedStream(filename or file.name, file.read_bytes(), directory)
    logger.info(f"Uploading {file} ({stream.size} bytes)")
    key = emitter.attempt_emit(stream, bucket=bucket)
    logger.success(f"Stored s3://{bucket or emitter.config.bucket}/{key}")
    monitoring.close()
    typer.echo(key)


@app.command("decorate-path")
def decorate_path(
    name: str = typer.Argument(..., help="Object name"),
    at: Optional[str] = typer.Option(None, "--at", help="ISO-8601 instant (default: now, UTC)"),
    directory: Optional[str] = typer.Option(None, "--directory", help="Output directory"),
    date_format: Optional[str] = typer.Option(None, "--date-format", help="e.g. {yyyy}/{MM}/{dd}"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Filename prefix"),
):
    """Print the key NAME would be stored under."""
    if at is None:
        ts = datetime.now(timezone.utc)
    else:
        try:
            ts = datetime.fromisoformat(at.replace("Z", "+00:00"))
        except ValueError:
            logger.error(f"Not an ISO-8601 instant: {at}")
            sys.exit(2)
    typer.echo(_decorate_path(directory, name, ts, date_format, prefix))


@app.command("settings")
def show_settings():
    """Print the effective configuration (secrets masked)."""
    values = get_settings().model_dump()
    for k in _SECRETS:
        if values.get(k):
            values[k] = "***"
    typer.echo(json.dumps(values, indent=2, default=str))


if __name__ == "__main__":
    app()
