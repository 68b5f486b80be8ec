#!/usr/bin/env python3
"""
ClipScribe v1.0.0 — command-line entry point.

    clipscribe upload clip.mp3
    clipscribe url https://www.tiktok.com/@user/video/123
    clipscribe job <id>
    clipscribe stats --secret <admin secret>
    clipscribe doctor
"""

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from datetime import datetime
from pathlib import Path

from clipscribe.core.config import AppConfig
from clipscribe.core.constants import APP_NAME, APP_VERSION, LOG_DIR
from clipscribe.core.db_sqlite import Database
from clipscribe.core.diagnostics import get_diagnostics, missing_tools
from clipscribe.core.error_codes import JobError, StoreError
from clipscribe.core.job_pipeline import TranscriptionPipeline
from clipscribe.core.transcribe_whisper import verify_api_key
from clipscribe.core.url_parse import validate_media_url

logger = logging.getLogger("clipscribe")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_REJECTED = 2


def setup_logging(verbose: bool = False):
    """Log to LOG_DIR/app.log and stderr."""
    handlers = [logging.StreamHandler(sys.stderr)]
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(LOG_DIR / "app.log", encoding="utf-8"))
    except OSError as e:
        print(f"Cannot write log file in {LOG_DIR}: {e}", file=sys.stderr)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def emit(data: dict):
    print(json.dumps(data, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipscribe",
        description="Transcribe uploaded media files or media URLs.",
    )
    parser.add_argument("--version", action="version",
                        version=f"{APP_NAME} {APP_VERSION}")
    parser.add_argument("--config", type=Path, default=None,
                        help="path to config.json")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p_upload = sub.add_parser("upload", help="transcribe a local media file")
    p_upload.add_argument("path", type=Path)
    p_upload.add_argument("--content-type", default=None,
                          help="declared MIME type (guessed from the name if omitted)")

    p_url = sub.add_parser("url", help="transcribe the audio behind a media URL")
    p_url.add_argument("url")

    p_job = sub.add_parser("job", help="show a stored job")
    p_job.add_argument("job_id")

    p_stats = sub.add_parser("stats", help="aggregate job statistics")
    p_stats.add_argument("--secret", required=True)

    p_doctor = sub.add_parser("doctor", help="check tools and configuration")
    p_doctor.add_argument("--verify-key", action="store_true",
                          help="also check the API key against the provider")
    return parser


async def run_command(args, pipeline: TranscriptionPipeline) -> int:
    if args.command == "upload":
        try:
            data = args.path.read_bytes()
        except OSError as e:
            emit({"error": f"Cannot read {args.path}: {e}", "status": "failed"})
            return EXIT_REJECTED
        content_type = args.content_type or mimetypes.guess_type(args.path.name)[0]
        result = await pipeline.submit_upload(data, args.path.name, content_type)
        emit(result.to_dict())

    elif args.command == "url":
        validate_media_url(args.url)
        missing = missing_tools(pipeline.config)
        if missing:
            emit({"error": "Missing required tools: " + ", ".join(missing),
                  "status": "failed"})
            return EXIT_REJECTED
        result = await pipeline.submit_url(args.url)
        emit(result.to_dict())

    elif args.command == "job":
        job = await pipeline.get_job(args.job_id)
        if job is None:
            emit({"error": f"Job {args.job_id} not found"})
            return EXIT_FAILED
        emit(job.to_dict())

    elif args.command == "stats":
        stats = await pipeline.get_admin_stats(args.secret)
        emit(stats.to_dict())

    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    config = AppConfig(args.config) if args.config else AppConfig()

    logger.debug("%s v%s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.debug("Python: %s", sys.executable)
    logger.debug("Config: %s", config.as_dict())

    if args.command == "doctor":
        info = get_diagnostics(config)
        if args.verify_key and config.api_key:
            ok, message = verify_api_key(config.api_key)
            info["api_key_valid"] = ok
            info["api_key_check"] = message
        emit(info)
        return EXIT_OK

    try:
        db = Database(config.db_path)
    except StoreError as e:
        logger.critical("Fatal error: %s", e)
        emit(e.to_dict())
        return EXIT_FAILED

    pipeline = TranscriptionPipeline(db, config)
    try:
        return asyncio.run(run_command(args, pipeline))
    except JobError as e:
        emit(e.to_dict())
        # no job record means the input was turned away at intake
        if e.job_id or isinstance(e, StoreError):
            return EXIT_FAILED
        return EXIT_REJECTED
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
