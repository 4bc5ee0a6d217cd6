"""Command-line interface for Portcullis."""

import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator
from pathlib import Path

import click
import uvicorn

from portcullis.core.config import settings
from portcullis.core.exceptions import AdmissionError
from portcullis.core.gate import AdmissionGate
from portcullis.core.models import (
    DEFAULT_MAX_BODY_BYTES,
    MAX_BODY_BYTES_LIMIT,
    RequestSnapshot,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@click.group()
def cli() -> None:
    """Portcullis - request admission gate for HTTP pipelines."""
    pass


@cli.command()
@click.option(
    "--host",
    default=settings.api_host,
    help="Host to bind to",
    show_default=True,
)
@click.option(
    "--port",
    default=settings.api_port,
    type=int,
    help="Port to bind to",
    show_default=True,
)
@click.option(
    "--reload",
    is_flag=True,
    help="Enable auto-reload for development",
)
@click.option(
    "--log-level",
    default=settings.log_level.lower(),
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
    show_default=True,
)
def serve(host: str, port: int, reload: bool, log_level: str) -> None:
    """Start the Portcullis API server."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info(f"Starting Portcullis API server on {host}:{port}")

    uvicorn.run(
        "portcullis.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


def build_gate(max_body_bytes: int | None, max_url_length: int | None) -> AdmissionGate:
    """Pick the gate constructor matching the limits given on the command line."""
    if max_url_length is None:
        if max_body_bytes is None:
            return AdmissionGate.from_settings(settings)
        return AdmissionGate.with_default_url_length(max_body_bytes)
    if max_body_bytes is None or max_body_bytes <= 0:
        max_body_bytes = DEFAULT_MAX_BODY_BYTES
    return AdmissionGate.new(max_body_bytes, max_url_length)


async def _read_file(path: Path) -> AsyncIterator[bytes]:
    with open(path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            yield chunk


@cli.command()
@click.option("--url", required=True, help="Absolute request URL")
@click.option(
    "--content-length",
    type=click.IntRange(min=0),
    help="Declared body length in bytes",
)
@click.option(
    "--body-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File whose bytes are counted when no length is declared",
)
@click.option(
    "--max-body-bytes",
    type=click.IntRange(max=MAX_BODY_BYTES_LIMIT),
    help="Body limit (0 or less = default)",
)
@click.option("--max-url-length", type=click.IntRange(min=1), help="URL limit")
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output the decision as JSON",
)
def check(
    url: str,
    content_length: int | None,
    body_file: Path | None,
    max_body_bytes: int | None,
    max_url_length: int | None,
    output_json: bool,
) -> None:
    """Evaluate one admission decision. Exits 0 on admit, 1 on reject."""
    gate = build_gate(max_body_bytes, max_url_length)
    snapshot = RequestSnapshot(
        url=url,
        content_length=content_length,
        body=_read_file(body_file) if body_file is not None else None,
    )

    error: AdmissionError | None = None
    try:
        asyncio.run(gate.admit(snapshot))
    except AdmissionError as e:
        error = e

    if output_json:
        payload = {
            "admitted": error is None,
            "kind": error.kind.value if error else None,
            "status_code": error.status_code if error else None,
            "message": error.message if error else None,
            "max_body_bytes": gate.max_body_bytes,
            "max_url_length": gate.max_url_length,
        }
        click.echo(json.dumps(payload, indent=2))
    elif error is None:
        click.echo("ADMIT")
    else:
        click.echo(f"REJECT {error.status_code} {error.kind.value}: {error.message}")

    if error is not None:
        sys.exit(1)


if __name__ == "__main__":
    cli()
