"""
Shared constants for ClipScribe.
Single source of truth — imported by every other module.
"""

import os
import pathlib
import tempfile

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "ClipScribe"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

APP_SUPPORT_DIR = pathlib.Path(
    os.environ.get("CLIPSCRIBE_HOME", str(HOME / ".clipscribe"))
)
LOG_DIR = APP_SUPPORT_DIR / "logs"
DB_PATH = APP_SUPPORT_DIR / "app.db"
CONFIG_PATH = APP_SUPPORT_DIR / "config.json"

# Shared by every concurrent remote download; filenames carry a unique prefix
DEFAULT_TEMP_DIR = pathlib.Path(tempfile.gettempdir())

# ── Job status values ─────────────────────────────────────────────────
class JobStatus:
    PENDING = "pending"          # reserved, jobs are created as PROCESSING
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

# ── Source types ──────────────────────────────────────────────────────
class SourceType:
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    UPLOAD = "upload"
    OTHER = "other"

# Checked in order, first match wins. Matched against the lowercased host.
SOURCE_HOST_PATTERNS = [
    ("youtube.com", SourceType.YOUTUBE),
    ("youtu.be", SourceType.YOUTUBE),
    ("instagram.com", SourceType.INSTAGRAM),
    ("tiktok.com", SourceType.TIKTOK),
    ("twitter.com", SourceType.OTHER),
    ("x.com", SourceType.OTHER),
    ("facebook.com", SourceType.OTHER),
    ("fb.watch", SourceType.OTHER),
    ("vimeo.com", SourceType.OTHER),
    ("soundcloud.com", SourceType.OTHER),
]

# Downloads from these fail against the download host's network origin
BLOCKED_SOURCE_TYPES = {SourceType.YOUTUBE}

ALLOWED_URL_SCHEMES = ("http", "https")

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Rejected at intake, no job record exists
    INVALID_INPUT = "ERR_INVALID_INPUT"
    BLOCKED_PLATFORM = "ERR_BLOCKED_PLATFORM"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"

    # Processing failures, written to the job record
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"   # also checked at intake
    CONFIGURATION = "ERR_CONFIGURATION"
    ACQUISITION_FAILED = "ERR_ACQUISITION_FAILED"
    PROVIDER_FAILED = "ERR_PROVIDER_FAILED"
    STORE_FAILED = "ERR_STORE_FAILED"
    UNEXPECTED = "ERR_UNEXPECTED"

REJECTION_ERRORS = {
    ErrorCode.INVALID_INPUT,
    ErrorCode.BLOCKED_PLATFORM,
    ErrorCode.UNAUTHORIZED,
}

BLOCKED_PLATFORM_MESSAGE = (
    "YouTube is currently blocked by anti-bot detection. "
    "Please download the video and upload the file directly."
)

# ── Size and time limits ──────────────────────────────────────────────
MIB = 1024 * 1024
MAX_AUDIO_BYTES = 25 * MIB             # provider hard ceiling
DOWNLOAD_TIMEOUT_SEC = 120
MAX_SUBPROCESS_OUTPUT_BYTES = 10 * MIB
REQUEST_TIMEOUT_SEC = 300

# ── Upload allow-list ─────────────────────────────────────────────────
ALLOWED_EXTENSIONS = ("mp3", "mp4", "wav", "webm", "m4a", "ogg", "flac")

ALLOWED_MIME_TYPES = {
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/webm",
    "audio/m4a",
    "audio/x-m4a",
    "audio/mp4",
    "video/mp4",
    "video/webm",
    "audio/ogg",
    "audio/flac",
}

# Extension → MIME type sent to the provider
CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    "wav": "audio/wav",
    "webm": "audio/webm",
    "m4a": "audio/m4a",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# ── Remote acquisition ────────────────────────────────────────────────
class Downloader:
    YTDLP = "ytdlp"
    COBALT = "cobalt"

YTDLP_BINARY = "yt-dlp"
YTDLP_AUDIO_FORMAT = "mp3"
YTDLP_AUDIO_QUALITY = "128K"
YTDLP_MAX_FILESIZE = "25M"
YTDLP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
YTDLP_EXTRACTOR_ARGS = "youtube:player_client=web"
TEMP_FILE_PREFIX = "audio"

# ── Cobalt conversion API ─────────────────────────────────────────────
COBALT_API_URL = "https://api.cobalt.tools/api/json"
COBALT_FILENAME = "audio.mp3"

# ── Whisper ───────────────────────────────────────────────────────────
WHISPER_API_BASE = "https://api.openai.com/v1"
WHISPER_TRANSCRIPTIONS_URL = f"{WHISPER_API_BASE}/audio/transcriptions"
WHISPER_MODEL = "whisper-1"
WHISPER_RESPONSE_FORMAT = "verbose_json"
DEFAULT_LANGUAGE = "en"

# ── Admin statistics ──────────────────────────────────────────────────
STATS_RECENT_LIMIT = 100
