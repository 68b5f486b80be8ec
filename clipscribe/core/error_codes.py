"""
Standardised error handling for ClipScribe.

Every failure the pipeline surfaces is a JobError. Rejections (bad input,
blocked platform) never carry a job_id; processing failures carry the id of
the job record they were written to.
"""

from clipscribe.core.constants import ErrorCode, REJECTION_ERRORS


class JobError(Exception):
    """Raised when a job encounters a known error condition."""

    def __init__(self, code: str, message: str, job_id: str | None = None):
        self.code = code
        self.message = message
        self.job_id = job_id
        super().__init__(message)

    def __str__(self):
        return self.message

    @property
    def is_rejection(self) -> bool:
        return is_rejection(self.code)

    def to_dict(self) -> dict:
        data = {"error": self.message, "code": self.code, "status": "failed"}
        if self.job_id:
            data["id"] = self.job_id
        return data


class _CodedJobError(JobError):
    """JobError whose code is fixed by the subclass."""

    code = ErrorCode.UNEXPECTED

    def __init__(self, message: str, job_id: str | None = None):
        super().__init__(self.code, message, job_id=job_id)


class InvalidInput(_CodedJobError):
    code = ErrorCode.INVALID_INPUT


class BlockedPlatform(_CodedJobError):
    code = ErrorCode.BLOCKED_PLATFORM


class PayloadTooLarge(_CodedJobError):
    code = ErrorCode.PAYLOAD_TOO_LARGE


class ConfigurationError(_CodedJobError):
    code = ErrorCode.CONFIGURATION


class AcquisitionError(_CodedJobError):
    code = ErrorCode.ACQUISITION_FAILED


class ProviderError(_CodedJobError):
    """Non-2xx (or unreachable) transcription provider."""

    code = ErrorCode.PROVIDER_FAILED

    def __init__(self, message: str, status: int | None = None,
                 body: str | None = None, job_id: str | None = None):
        self.status = status
        self.body = body
        super().__init__(message, job_id=job_id)


class StoreError(_CodedJobError):
    code = ErrorCode.STORE_FAILED


class Unauthorized(_CodedJobError):
    code = ErrorCode.UNAUTHORIZED


def is_rejection(code: str) -> bool:
    return code in REJECTION_ERRORS
