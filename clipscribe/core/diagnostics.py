"""
Diagnostics: tool version detection and configuration checks.
"""

import logging
import shutil

from clipscribe.core.config import AppConfig
from clipscribe.core.constants import Downloader, APP_VERSION
from clipscribe.core.security_utils import run_subprocess_capture, mask_secret

logger = logging.getLogger(__name__)


def get_ytdlp_version(binary: str = "yt-dlp") -> str:
    """Return yt-dlp version string, or error message."""
    try:
        result = run_subprocess_capture([binary, "--version"], timeout=10)
        if result.returncode == 0:
            return result.stdout.strip()
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except Exception as e:
        return f"Error: {e}"


def get_ffmpeg_version() -> str:
    """Return ffmpeg version string, or error message."""
    try:
        result = run_subprocess_capture(["ffmpeg", "-version"], timeout=10)
        if result.returncode == 0:
            lines = result.stdout.strip().splitlines()
            return lines[0] if lines else "Unknown"
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except Exception as e:
        return f"Error: {e}"


def missing_tools(config: AppConfig) -> list[str]:
    """Tools the configured downloader needs that are not on PATH."""
    if config.downloader != Downloader.YTDLP:
        return []
    missing = []
    if not shutil.which(config.ytdlp_path):
        missing.append(f"{config.ytdlp_path} (install with: pip install yt-dlp)")
    # yt-dlp needs ffmpeg to extract and transcode audio
    if not shutil.which("ffmpeg"):
        missing.append("ffmpeg")
    return missing


def get_diagnostics(config: AppConfig) -> dict:
    """Gather all diagnostic information."""
    info = {
        "version": APP_VERSION,
        "downloader": config.downloader,
        "api_key": mask_secret(config.api_key),
        "admin_secret_configured": bool(config.admin_secret),
        "db_path": str(config.db_path),
        "temp_dir": str(config.temp_dir),
    }
    if config.downloader == Downloader.YTDLP:
        info["ytdlp_version"] = get_ytdlp_version(config.ytdlp_path)
        info["ffmpeg_version"] = get_ffmpeg_version()
    else:
        info["cobalt_api_url"] = config.cobalt_api_url
    return info
