"""
OpenAI Whisper speech-to-text integration.
Single-shot multipart upload; no retries.
"""

import logging
from dataclasses import dataclass

import requests

from clipscribe.core.constants import (
    MIB, MAX_AUDIO_BYTES, CONTENT_TYPES, DEFAULT_CONTENT_TYPE,
    WHISPER_API_BASE, WHISPER_TRANSCRIPTIONS_URL, WHISPER_MODEL,
    WHISPER_RESPONSE_FORMAT, REQUEST_TIMEOUT_SEC,
)
from clipscribe.core.error_codes import (
    ConfigurationError, PayloadTooLarge, ProviderError,
)

logger = logging.getLogger(__name__)

_ERROR_BODY_IN_MESSAGE = 500


@dataclass
class TranscriptionResult:
    text: str
    duration: float | None = None


def content_type_for(filename: str) -> str:
    ext = filename.lower().rsplit('.', 1)[-1] if '.' in filename else ''
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def verify_api_key(api_key: str) -> tuple[bool, str]:
    """
    Verify an OpenAI API key with a lightweight request.
    Returns (success: bool, message: str).
    """
    try:
        resp = requests.get(
            f"{WHISPER_API_BASE}/models",
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=10,
        )
        if resp.status_code == 200:
            return True, "Key verified"
        elif resp.status_code in (401, 403):
            return False, "Key invalid or rejected"
        else:
            return False, f"Unexpected response: {resp.status_code}"
    except requests.exceptions.ConnectionError:
        return False, "Network error — could not reach OpenAI"
    except requests.exceptions.Timeout:
        return False, "Network error — request timed out"
    except requests.exceptions.RequestException as e:
        return False, f"Network error: {e}"


def transcribe_audio(audio_bytes: bytes, filename: str,
                     api_key: str | None = None,
                     timeout: int = REQUEST_TIMEOUT_SEC) -> TranscriptionResult:
    """
    Send an audio buffer to Whisper and return its text and duration.

    The credential and the size ceiling are both checked before any network
    call. `duration` is passed through unrounded.
    """
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY is not configured")

    if len(audio_bytes) > MAX_AUDIO_BYTES:
        raise PayloadTooLarge(
            f"File too large. Maximum size is {MAX_AUDIO_BYTES // MIB}MB, "
            f"got {len(audio_bytes) / MIB:.1f}MB"
        )

    files = {"file": (filename, audio_bytes, content_type_for(filename))}
    data = {"model": WHISPER_MODEL, "response_format": WHISPER_RESPONSE_FORMAT}

    try:
        resp = requests.post(
            WHISPER_TRANSCRIPTIONS_URL,
            headers={"Authorization": f"Bearer {api_key}"},
            files=files,
            data=data,
            timeout=timeout,
        )
    except requests.exceptions.Timeout:
        raise ProviderError("Whisper API request timed out")
    except requests.exceptions.ConnectionError:
        raise ProviderError("Network error connecting to Whisper API")
    except requests.exceptions.RequestException as e:
        raise ProviderError(f"Whisper API request failed: {e}")

    if not 200 <= resp.status_code < 300:
        body = resp.text or ""
        logger.error("Whisper API error %s: %s", resp.status_code, body)
        raise ProviderError(
            f"Whisper API error: {resp.status_code} "
            f"{body[:_ERROR_BODY_IN_MESSAGE] or resp.reason or ''}".rstrip(),
            status=resp.status_code,
            body=body,
        )

    try:
        result = resp.json()
    except ValueError:
        raise ProviderError("Failed to parse Whisper API response JSON",
                            status=resp.status_code, body=resp.text)

    text = result.get("text") if isinstance(result, dict) else None
    if text is None:
        raise ProviderError("Whisper API response has no text",
                            status=resp.status_code, body=resp.text)

    duration = result.get("duration")
    if duration is not None:
        try:
            duration = float(duration)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric duration %r", duration)
            duration = None

    return TranscriptionResult(text=text, duration=duration)
