"""
Audio acquisition.

Direct mode validates an uploaded buffer. Remote mode turns a media URL into
an audio buffer, either by running yt-dlp as a subprocess or by asking a
conversion API for a direct audio link. Both return AcquiredAudio.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

import requests

from clipscribe.core.cleanup import cleanup_prefixed_files
from clipscribe.core.config import AppConfig
from clipscribe.core.constants import (
    MIB, MAX_AUDIO_BYTES, ALLOWED_EXTENSIONS, ALLOWED_MIME_TYPES,
    DEFAULT_TEMP_DIR, DOWNLOAD_TIMEOUT_SEC, MAX_SUBPROCESS_OUTPUT_BYTES,
    Downloader, YTDLP_BINARY, YTDLP_AUDIO_FORMAT, YTDLP_AUDIO_QUALITY,
    YTDLP_MAX_FILESIZE, YTDLP_USER_AGENT, YTDLP_EXTRACTOR_ARGS,
    COBALT_API_URL, COBALT_FILENAME,
)
from clipscribe.core.error_codes import (
    AcquisitionError, InvalidInput, PayloadTooLarge,
)
from clipscribe.core.security_utils import (
    run_subprocess_capture, make_temp_prefix, OutputLimitExceeded,
)

logger = logging.getLogger(__name__)

_STREAM_CHUNK = 64 * 1024


@dataclass
class AcquiredAudio:
    audio_bytes: bytes
    filename: str


def file_extension(filename: str) -> str:
    return filename.lower().rsplit('.', 1)[-1] if '.' in filename else ''


def check_size(size: int, limit: int = MAX_AUDIO_BYTES):
    if size > limit:
        raise PayloadTooLarge(
            f"File too large. Maximum size is {limit // MIB}MB, "
            f"got {size / MIB:.1f}MB"
        )


# ── Direct mode ───────────────────────────────────────────────────────

def is_allowed_upload(filename: str, content_type: str | None = None) -> bool:
    """Accept by declared content type OR filename extension."""
    if content_type and content_type.split(';', 1)[0].strip().lower() in ALLOWED_MIME_TYPES:
        return True
    return file_extension(filename or '') in ALLOWED_EXTENSIONS


def acquire_upload(audio_bytes: bytes, filename: str,
                   content_type: str | None = None) -> AcquiredAudio:
    """
    Validate an uploaded buffer and pass it through unchanged.
    Raises InvalidInput for a missing or disallowed file and
    PayloadTooLarge above the size ceiling.
    """
    if not audio_bytes:
        raise InvalidInput("No file provided")
    if not filename:
        raise InvalidInput("Uploaded file has no filename")
    if not is_allowed_upload(filename, content_type):
        raise InvalidInput(f"Invalid file type: {content_type or filename}")
    check_size(len(audio_bytes))

    logger.info("Received file: %s (%.2fMB)", filename, len(audio_bytes) / MIB)
    return AcquiredAudio(audio_bytes=bytes(audio_bytes), filename=filename)


# ── Remote mode: yt-dlp ───────────────────────────────────────────────

class YtDlpDownloader:
    """Extract audio from a media page by running yt-dlp."""

    name = Downloader.YTDLP

    def __init__(self, temp_dir: Path | None = None,
                 binary: str = YTDLP_BINARY,
                 timeout: int = DOWNLOAD_TIMEOUT_SEC,
                 max_output: int = MAX_SUBPROCESS_OUTPUT_BYTES):
        self.temp_dir = temp_dir or DEFAULT_TEMP_DIR
        self.binary = binary
        self.timeout = timeout
        self.max_output = max_output

    def build_args(self, url: str, output_template: str) -> list[str]:
        return [
            self.binary,
            "--extract-audio",
            "--audio-format", YTDLP_AUDIO_FORMAT,
            "--audio-quality", YTDLP_AUDIO_QUALITY,
            "--max-filesize", YTDLP_MAX_FILESIZE,
            "--no-playlist",
            "--no-warnings",
            "--quiet",
            # Reduce upstream anti-automation blocking; hints only
            "--user-agent", YTDLP_USER_AGENT,
            "--extractor-args", YTDLP_EXTRACTOR_ARGS,
            "--geo-bypass",
            "--output", output_template,
            url,
        ]

    def download(self, url: str) -> AcquiredAudio:
        """
        Download and transcode `url` to mp3 in the temp directory, read it
        into memory and delete it. Raises AcquisitionError on any failure.
        """
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        prefix = make_temp_prefix()
        output_template = str(self.temp_dir / f"{prefix}.%(ext)s")
        args = self.build_args(url, output_template)

        logger.info("Downloading audio from: %s", url)
        try:
            self._run(args)
            audio_path = self._find_output(prefix)
            audio_bytes = audio_path.read_bytes()
        except OSError as e:
            raise AcquisitionError(f"Failed to read downloaded audio: {e}")
        finally:
            cleanup_prefixed_files(self.temp_dir, prefix)

        if not audio_bytes:
            raise AcquisitionError("Failed to extract audio: output file is empty")

        logger.info("Downloaded %s: %.2fMB", audio_path.name, len(audio_bytes) / MIB)
        return AcquiredAudio(audio_bytes=audio_bytes, filename=audio_path.name)

    def _run(self, args: list[str]):
        try:
            result = run_subprocess_capture(args, timeout=self.timeout,
                                            max_output=self.max_output)
        except subprocess.TimeoutExpired:
            raise AcquisitionError(
                f"Failed to download audio: yt-dlp timed out after {self.timeout}s")
        except OutputLimitExceeded as e:
            raise AcquisitionError(f"Failed to download audio: {e}")
        except FileNotFoundError:
            raise AcquisitionError(
                f"Failed to download audio: {self.binary} is not installed")

        if result.returncode != 0:
            diagnostic = (result.stderr or result.stdout or "").strip()
            logger.error("yt-dlp error (rc=%s): %s", result.returncode, diagnostic)
            raise AcquisitionError(
                f"Failed to download audio (rc={result.returncode}): "
                f"{diagnostic or 'no diagnostic output'}")

    def _find_output(self, prefix: str) -> Path:
        suffix = f".{YTDLP_AUDIO_FORMAT}"
        matches = sorted(p for p in self.temp_dir.iterdir()
                         if p.name.startswith(prefix) and p.name.endswith(suffix))
        if not matches:
            raise AcquisitionError("Failed to extract audio: no output file found")
        if len(matches) > 1:
            raise AcquisitionError(
                f"Failed to extract audio: expected one output file, found {len(matches)}")
        return matches[0]


# ── Remote mode: conversion API ───────────────────────────────────────

class CobaltDownloader:
    """
    Ask a cobalt-compatible API for an audio-only rendition of the page,
    then fetch the returned link with the size ceiling enforced while
    streaming.
    """

    name = Downloader.COBALT

    def __init__(self, api_url: str = COBALT_API_URL,
                 timeout: int = DOWNLOAD_TIMEOUT_SEC,
                 session: requests.Session | None = None):
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def download(self, url: str) -> AcquiredAudio:
        logger.info("Requesting audio link for: %s", url)
        audio_url = self._resolve(url)
        audio_bytes = self._fetch(audio_url)
        logger.info("Downloaded %s: %.2fMB", COBALT_FILENAME, len(audio_bytes) / MIB)
        return AcquiredAudio(audio_bytes=audio_bytes, filename=COBALT_FILENAME)

    def _resolve(self, url: str) -> str:
        try:
            resp = self.session.post(
                self.api_url,
                headers={"Content-Type": "application/json",
                         "Accept": "application/json"},
                json={"url": url, "aFormat": "mp3", "isAudioOnly": True},
                timeout=self.timeout,
            )
            data = resp.json()
        except requests.exceptions.RequestException as e:
            raise AcquisitionError(f"Failed to download audio: {e}")
        except ValueError:
            raise AcquisitionError(
                f"Failed to download audio: conversion API returned "
                f"{resp.status_code} with a non-JSON body")

        if not isinstance(data, dict):
            raise AcquisitionError(
                "Failed to download audio: unexpected conversion API response")
        if data.get("status") == "error" or not data.get("url"):
            raise AcquisitionError(data.get("text") or "Failed to download audio")
        return data["url"]

    def _fetch(self, audio_url: str) -> bytes:
        buf = bytearray()
        try:
            with self.session.get(audio_url, stream=True, timeout=self.timeout) as resp:
                if resp.status_code != 200:
                    raise AcquisitionError(
                        f"Failed to download audio: HTTP {resp.status_code}")
                for chunk in resp.iter_content(chunk_size=_STREAM_CHUNK):
                    buf.extend(chunk)
                    check_size(len(buf))
        except requests.exceptions.RequestException as e:
            raise AcquisitionError(f"Failed to download audio: {e}")

        if not buf:
            raise AcquisitionError("Failed to download audio: empty response")
        return bytes(buf)


def make_downloader(config: AppConfig):
    """Build the remote acquisition strategy selected in config."""
    if config.downloader == Downloader.COBALT:
        return CobaltDownloader(api_url=config.cobalt_api_url,
                                timeout=config.download_timeout_sec)
    return YtDlpDownloader(temp_dir=config.temp_dir,
                           binary=config.ytdlp_path,
                           timeout=config.download_timeout_sec)
