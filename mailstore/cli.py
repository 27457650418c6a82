#!/usr/bin/env python3
"""Command-line interface for the email ingestion pipeline."""

import asyncio
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import structlog

from .config.settings import get_settings
from .database.engine import create_database_engine, create_session_factory, close_database_engine
from .database.store import SqlEmailStore
from .exceptions import EmailInProgressError, EmailNotFoundError
from .ingestion import IngestionPipeline, IngestionResult, IngestionStatus
from .main import build_pipeline, configure_logging
from .services.embeddings import create_embedding_provider

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


def load_payload(source: str) -> Any:
    """Read a JSON payload from a file path, or stdin for ``-``."""
    if source == "-":
        return json.load(sys.stdin)

    path = Path(source)
    if not path.is_file():
        raise FileNotFoundError(f"Payload file does not exist: {source}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def result_to_dict(result: IngestionResult) -> dict:
    """Render an ingestion result for the terminal."""
    data = {
        "status": result.status.value,
        "email_id": result.email_id,
        "sections_written": result.sections_written,
        "total_sections": result.total_sections,
    }
    if result.error is not None:
        data["error"] = result.error.to_dict()
    return data


def exit_code_for(result: IngestionResult) -> int:
    """Map an ingestion result to a process exit code."""
    if result.ok:
        return EXIT_OK
    if result.status == IngestionStatus.VALIDATION_ERROR:
        return EXIT_INVALID
    return EXIT_FAILED


async def run_with_pipeline(action: Callable[[IngestionPipeline], Awaitable[IngestionResult]]) -> IngestionResult:
    """Build the pipeline from settings, run *action* and release resources."""
    settings = get_settings()
    engine = create_database_engine(settings.database)
    embedder = create_embedding_provider(settings.embedding)
    try:
        store = SqlEmailStore(create_session_factory(engine))
        return await action(build_pipeline(settings, store, embedder))
    finally:
        await embedder.close()
        await close_database_engine(engine)


async def run_ingest(source: str) -> int:
    """Ingest one email payload from a file."""
    try:
        payload = load_payload(source)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Could not read payload", source=source, error=str(exc))
        return EXIT_INVALID

    result = await run_with_pipeline(lambda pipeline: pipeline.ingest(payload))
    print(json.dumps(result_to_dict(result), indent=2))
    return exit_code_for(result)


async def run_resume(email_id: int, force: bool = False) -> int:
    """Resume the ingestion of a stored email."""
    try:
        result = await run_with_pipeline(lambda pipeline: pipeline.resume(email_id, force=force))
    except EmailNotFoundError as exc:
        logger.error("Email not found", email_id=exc.email_id)
        return EXIT_FAILED
    except EmailInProgressError as exc:
        logger.error("Email still being ingested, use --force if its process is gone", email_id=exc.email_id)
        return EXIT_FAILED

    print(json.dumps(result_to_dict(result), indent=2))
    return exit_code_for(result)


def run_server(host: str, port: int) -> int:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("mailstore.main:app", host=host, port=port, log_level="info")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="mailstore",
        description="Store emails with per-section vector embeddings",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest_parser = subparsers.add_parser("ingest", help="Ingest an email payload from a JSON file")
    ingest_parser.add_argument("payload", help="Path to a JSON payload file, or - for stdin")

    resume_parser = subparsers.add_parser("resume", help="Resume a partially ingested email")
    resume_parser.add_argument("email_id", type=int, help="Identifier of the stored email")
    resume_parser.add_argument("--force", action="store_true", help="Resume even if the email is still pending")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=settings.host, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=settings.port, help="Bind port")

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().monitoring)

    if args.command == "ingest":
        return asyncio.run(run_ingest(args.payload))
    if args.command == "resume":
        return asyncio.run(run_resume(args.email_id, force=args.force))
    return run_server(args.host, args.port)


if __name__ == "__main__":
    sys.exit(main())
