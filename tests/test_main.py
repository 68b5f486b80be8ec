#!/usr/bin/env python3
"""
Tests for the command-line entry point: exit codes, emitted JSON and how
each command drives the pipeline.
"""

import sys
import io
import json
import tempfile
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

import main
from clipscribe.core.constants import ErrorCode, JobStatus
from clipscribe.core.error_codes import (
    AcquisitionError, ProviderError, StoreError, Unauthorized,
)
from clipscribe.core.models_sqlite import JobResult


class CliTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.config_path = self.root / "config.json"

        patches = {
            "setup_logging": mock.patch("main.setup_logging"),
            "db": mock.patch("main.Database"),
            "pipeline": mock.patch("main.TranscriptionPipeline"),
            "missing_tools": mock.patch("main.missing_tools", return_value=[]),
        }
        self.mocks = {name: p.start() for name, p in patches.items()}
        for p in patches.values():
            self.addCleanup(p.stop)

        self.pipeline = self.mocks["pipeline"].return_value
        self.pipeline.submit_url = mock.AsyncMock(
            return_value=JobResult(id="j1", transcription="hello world"))
        self.pipeline.submit_upload = mock.AsyncMock(
            return_value=JobResult(id="j2", transcription="from a file"))
        self.pipeline.get_job = mock.AsyncMock(return_value=None)
        self.pipeline.get_admin_stats = mock.AsyncMock()

    def tearDown(self):
        self.tmp.cleanup()

    def run_main(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main.main(["--config", str(self.config_path), *argv])
        text = out.getvalue()
        return code, (json.loads(text) if text.strip() else None)


class TestUrlCommand(CliTestCase):

    def test_completed(self):
        code, data = self.run_main("url", "https://vimeo.com/123")
        self.assertEqual(code, main.EXIT_OK)
        self.assertEqual(data, {"id": "j1", "transcription": "hello world",
                                "status": JobStatus.COMPLETED})
        self.pipeline.submit_url.assert_awaited_once_with("https://vimeo.com/123")
        self.mocks["db"].return_value.close.assert_called_once()

    def test_blocked_platform_rejected(self):
        code, data = self.run_main("url", "https://youtu.be/abc123")
        self.assertEqual(code, main.EXIT_REJECTED)
        self.assertEqual(data["code"], ErrorCode.BLOCKED_PLATFORM)
        self.assertNotIn("id", data)
        self.pipeline.submit_url.assert_not_awaited()

    def test_invalid_url_rejected_before_tool_check(self):
        self.mocks["missing_tools"].return_value = ["yt-dlp", "ffmpeg"]
        code, data = self.run_main("url", "not a url")
        self.assertEqual(code, main.EXIT_REJECTED)
        self.assertEqual(data["code"], ErrorCode.INVALID_INPUT)
        self.mocks["missing_tools"].assert_not_called()

    def test_missing_tools_rejected(self):
        self.mocks["missing_tools"].return_value = ["ffmpeg"]
        code, data = self.run_main("url", "https://vimeo.com/123")
        self.assertEqual(code, main.EXIT_REJECTED)
        self.assertIn("ffmpeg", data["error"])
        self.pipeline.submit_url.assert_not_awaited()

    def test_processing_failure_reports_job(self):
        self.pipeline.submit_url.side_effect = AcquisitionError(
            "Failed to download audio", job_id="j9")
        code, data = self.run_main("url", "https://vimeo.com/123")
        self.assertEqual(code, main.EXIT_FAILED)
        self.assertEqual(data, {"error": "Failed to download audio",
                                "code": ErrorCode.ACQUISITION_FAILED,
                                "status": "failed", "id": "j9"})

    def test_provider_failure(self):
        self.pipeline.submit_url.side_effect = ProviderError(
            "Whisper API error: 500 oops", status=500, job_id="j3")
        code, data = self.run_main("url", "https://vimeo.com/123")
        self.assertEqual(code, main.EXIT_FAILED)
        self.assertEqual(data["id"], "j3")

    def test_store_failure_without_job(self):
        self.pipeline.submit_url.side_effect = StoreError("database is locked")
        code, data = self.run_main("url", "https://vimeo.com/123")
        self.assertEqual(code, main.EXIT_FAILED)
        self.assertEqual(data["code"], ErrorCode.STORE_FAILED)
        self.assertNotIn("id", data)


class TestUploadCommand(CliTestCase):

    def write_clip(self, name, data=b"ID3audio"):
        path = self.root / name
        path.write_bytes(data)
        return path

    def test_guesses_content_type(self):
        path = self.write_clip("clip.mp3")
        code, data = self.run_main("upload", str(path))
        self.assertEqual(code, main.EXIT_OK)
        self.assertEqual(data["id"], "j2")
        self.pipeline.submit_upload.assert_awaited_once_with(
            b"ID3audio", "clip.mp3", "audio/mpeg")

    def test_explicit_content_type(self):
        path = self.write_clip("clip.bin")
        self.run_main("upload", str(path), "--content-type", "audio/ogg")
        self.pipeline.submit_upload.assert_awaited_once_with(
            b"ID3audio", "clip.bin", "audio/ogg")

    def test_unreadable_file_rejected(self):
        code, data = self.run_main("upload", str(self.root / "missing.mp3"))
        self.assertEqual(code, main.EXIT_REJECTED)
        self.assertEqual(data["status"], "failed")
        self.pipeline.submit_upload.assert_not_awaited()


class TestOtherCommands(CliTestCase):

    def test_job_not_found(self):
        code, data = self.run_main("job", "nope")
        self.assertEqual(code, main.EXIT_FAILED)
        self.assertIn("nope", data["error"])

    def test_stats_unauthorized(self):
        self.pipeline.get_admin_stats.side_effect = Unauthorized("Invalid secret")
        code, data = self.run_main("stats", "--secret", "wrong")
        self.assertEqual(code, main.EXIT_REJECTED)
        self.assertEqual(data["code"], ErrorCode.UNAUTHORIZED)

    def test_database_unavailable(self):
        self.mocks["db"].side_effect = StoreError("unable to open database file")
        code, data = self.run_main("job", "j1")
        self.assertEqual(code, main.EXIT_FAILED)
        self.assertEqual(data["code"], ErrorCode.STORE_FAILED)
        self.mocks["pipeline"].assert_not_called()


if __name__ == "__main__":
    unittest.main()
