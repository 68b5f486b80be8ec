"""
Transcription job pipeline.

Runs one job end to end per call: intake validation, record creation,
audio acquisition, transcription, terminal-state write. Each submission is
an independent coroutine; blocking work (SQLite, yt-dlp, HTTP) runs in
worker threads so concurrent jobs do not block each other.
"""

import asyncio
import logging
import math
from datetime import datetime
from typing import Callable

from clipscribe.core.config import AppConfig
from clipscribe.core.constants import (
    SourceType, JobStatus, ErrorCode, STATS_RECENT_LIMIT,
)
from clipscribe.core.db_sqlite import Database
from clipscribe.core.download_audio import (
    AcquiredAudio, acquire_upload, make_downloader,
)
from clipscribe.core.error_codes import JobError, StoreError, Unauthorized
from clipscribe.core.models_sqlite import Job, JobResult, AdminStats
from clipscribe.core.transcribe_whisper import transcribe_audio
from clipscribe.core.url_parse import validate_media_url

logger = logging.getLogger(__name__)


def round_duration(duration: float | None) -> int | None:
    """Round half up to whole seconds (3.2 → 3, 2.5 → 3)."""
    if duration is None:
        return None
    return int(math.floor(duration + 0.5))


def build_admin_stats(jobs: list[Job], today_start: datetime | None = None) -> AdminStats:
    """Aggregate counts over `jobs` (already limited to the most recent N)."""
    if today_start is None:
        today_start = datetime.now().astimezone().replace(
            hour=0, minute=0, second=0, microsecond=0)

    stats = AdminStats(transcriptions=list(jobs))
    for job in jobs:
        stats.total += 1
        if job.created_at and datetime.fromisoformat(job.created_at) >= today_start:
            stats.today += 1
        if job.status == JobStatus.COMPLETED:
            stats.completed += 1
        elif job.status == JobStatus.FAILED:
            stats.failed += 1
        stats.by_source[job.source_type] = stats.by_source.get(job.source_type, 0) + 1
    return stats


class TranscriptionPipeline:
    """
    Composes classifier, acquirer, transcription client and store.

    Rejections (bad input, blocked platform, oversized upload) are raised
    before a job record exists. Once a record exists every failure is
    written to it as `failed` before the error reaches the caller, with
    `job_id` set on the raised JobError.
    """

    def __init__(self, db: Database, config: AppConfig | None = None,
                 downloader=None, transcriber: Callable | None = None):
        self.db = db
        self.config = config or AppConfig()
        self.downloader = downloader or make_downloader(self.config)
        self.transcriber = transcriber or transcribe_audio

    # ── Intake ────────────────────────────────────────────────────────

    async def submit_url(self, url: str) -> JobResult:
        """Transcribe the audio behind a media page URL."""
        classification = validate_media_url(url)
        url = url.strip()
        logger.info("Processing URL: %s (source: %s)", url, classification.source_type)

        job = await self._create_job(source_type=classification.source_type,
                                     source_url=url)
        return await self._process_job(job, url=url)

    async def submit_upload(self, audio_bytes: bytes, filename: str,
                            content_type: str | None = None) -> JobResult:
        """Transcribe an uploaded media file."""
        audio = acquire_upload(audio_bytes, filename, content_type)
        job = await self._create_job(source_type=SourceType.UPLOAD,
                                     original_filename=filename)
        return await self._process_job(job, audio=audio)

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_job(self, job_id: str) -> Job | None:
        return await asyncio.to_thread(self.db.get_job, job_id)

    async def get_admin_stats(self, secret: str | None) -> AdminStats:
        """Aggregate statistics, gated by the shared admin secret."""
        if not secret:
            raise Unauthorized("Secret is required")
        expected = self.config.admin_secret
        if not expected or secret != expected:
            raise Unauthorized("Invalid secret")

        jobs = await asyncio.to_thread(self.db.get_recent_jobs, STATS_RECENT_LIMIT)
        return build_admin_stats(jobs)

    # ── Job processing pipeline ───────────────────────────────────────

    async def _create_job(self, source_type: str, source_url: str | None = None,
                          original_filename: str | None = None) -> Job:
        try:
            job = await asyncio.to_thread(
                self.db.create_job, source_type,
                source_url=source_url, original_filename=original_filename,
            )
        except StoreError as e:
            logger.error("Failed to create transcription record: %s", e)
            raise
        logger.info("Created job %s (source: %s)", job.id, source_type)
        return job

    async def _process_job(self, job: Job, url: str | None = None,
                           audio: AcquiredAudio | None = None) -> JobResult:
        job_id = job.id
        try:
            if audio is None:
                logger.info("Downloading audio for %s...", job_id)
                audio = await asyncio.to_thread(self.downloader.download, url)

            logger.info("Transcribing %s...", job_id)
            result = await asyncio.to_thread(
                self.transcriber, audio.audio_bytes, audio.filename,
                api_key=self.config.api_key,
                timeout=self.config.request_timeout_sec,
            )

            duration = round_duration(result.duration)
            await asyncio.to_thread(self.db.mark_completed, job_id,
                                    result.text, duration)

        except JobError as e:
            e.job_id = job_id
            await self._handle_job_error(job_id, e)
            raise
        except Exception as e:
            logger.error("Unexpected error processing job %s: %s", job_id, e, exc_info=True)
            error = JobError(ErrorCode.UNEXPECTED, str(e) or type(e).__name__,
                             job_id=job_id)
            await self._handle_job_error(job_id, error)
            raise error from e

        logger.info("Transcription completed: %s", job_id)
        return JobResult(id=job_id, transcription=result.text,
                         duration_seconds=duration)

    async def _handle_job_error(self, job_id: str, error: JobError):
        """Write the failure to the job; a failed write is logged, not raised."""
        logger.error("Transcription failed for %s: %s", job_id, error.message)
        try:
            await asyncio.to_thread(self.db.mark_failed, job_id, error.message)
        except StoreError as e:
            logger.error("Could not record failure for job %s: %s", job_id, e)
