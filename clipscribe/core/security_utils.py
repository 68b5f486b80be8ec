"""
Security utilities for ClipScribe.
- Safe subprocess execution (argument arrays only, bounded output)
- Collision-resistant temp file prefixes
- Credential masking for logs
"""

import secrets
import subprocess
import threading
import time
import logging

from clipscribe.core.constants import TEMP_FILE_PREFIX, MAX_SUBPROCESS_OUTPUT_BYTES

logger = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024
_READER_JOIN_SEC = 5


class OutputLimitExceeded(Exception):
    """Raised when a subprocess writes more than the allowed output."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"subprocess output exceeded {limit} bytes ({size} bytes)")


# ── Subprocess safety ─────────────────────────────────────────────────

def start_subprocess(args: list[str], **kwargs) -> subprocess.Popen:
    """
    Start a subprocess using argument arrays only, stdout and stderr piped.
    shell=True is explicitly forbidden.
    """
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")

    # Force shell=False; drop any caller-supplied value
    for key in ('shell', 'stdout', 'stderr', 'capture_output'):
        kwargs.pop(key, None)

    logger.debug("Running subprocess: %s", ' '.join(str(a) for a in args))
    return subprocess.Popen(args, shell=False, stdout=subprocess.PIPE,
                            stderr=subprocess.PIPE, **kwargs)


def run_subprocess_capture(args: list[str], timeout: int = 300,
                           max_output: int = MAX_SUBPROCESS_OUTPUT_BYTES,
                           **kwargs) -> subprocess.CompletedProcess:
    """
    Run subprocess and capture stdout/stderr as text.
    Raises subprocess.TimeoutExpired past `timeout`. The child is killed and
    OutputLimitExceeded raised as soon as the combined output passes
    `max_output` bytes.
    """
    proc = start_subprocess(args, **kwargs)

    buffers = {"stdout": bytearray(), "stderr": bytearray()}
    lock = threading.Lock()
    overflow = threading.Event()
    total = 0

    def drain(stream, buf: bytearray):
        nonlocal total
        for chunk in iter(lambda: stream.read1(_READ_CHUNK), b""):
            with lock:
                total += len(chunk)
                if total > max_output:
                    overflow.set()
                    proc.kill()
                    return
                buf.extend(chunk)

    readers = [
        threading.Thread(target=drain, args=(proc.stdout, buffers["stdout"]), daemon=True),
        threading.Thread(target=drain, args=(proc.stderr, buffers["stderr"]), daemon=True),
    ]
    for reader in readers:
        reader.start()

    try:
        returncode = proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()
        raise subprocess.TimeoutExpired(args, timeout)
    finally:
        # grandchildren can hold the pipes open after the child dies
        for reader, stream in zip(readers, (proc.stdout, proc.stderr)):
            reader.join(timeout=_READER_JOIN_SEC)
            if not reader.is_alive():
                stream.close()

    if overflow.is_set():
        raise OutputLimitExceeded(total, max_output)

    return subprocess.CompletedProcess(
        args, returncode,
        stdout=bytes(buffers["stdout"]).decode("utf-8", errors="replace"),
        stderr=bytes(buffers["stderr"]).decode("utf-8", errors="replace"),
    )


# ── Temp files ────────────────────────────────────────────────────────

def make_temp_prefix(prefix: str = TEMP_FILE_PREFIX) -> str:
    """
    Unique filename prefix for files in a shared temp directory:
    millisecond timestamp plus a random suffix.
    """
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


# ── Credentials ───────────────────────────────────────────────────────

def mask_secret(value: str | None) -> str:
    """Render a credential for logs without revealing it."""
    if not value:
        return "<unset>"
    if len(value) <= 8:
        return "***"
    return f"{value[:3]}…{value[-2:]}"
