"""
SQLite data models (plain dataclasses) for ClipScribe.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional

from clipscribe.core.constants import JobStatus, DEFAULT_LANGUAGE


@dataclass
class Job:
    id: str                          # UUID
    source_type: str
    source_url: Optional[str] = None         # URL intake only
    original_filename: Optional[str] = None  # upload intake only
    transcription_text: Optional[str] = None
    duration_seconds: Optional[int] = None
    language: str = DEFAULT_LANGUAGE
    status: str = JobStatus.PROCESSING
    error_message: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class JobResult:
    """What a caller receives once a job reaches `completed`."""
    id: str
    transcription: str
    status: str = JobStatus.COMPLETED
    duration_seconds: Optional[int] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "transcription": self.transcription,
                "status": self.status}


@dataclass
class AdminStats:
    total: int = 0
    today: int = 0
    completed: int = 0
    failed: int = 0
    by_source: dict = field(default_factory=dict)
    transcriptions: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "today": self.today,
            "completed": self.completed,
            "failed": self.failed,
            "bySource": dict(self.by_source),
            "transcriptions": [j.to_dict() for j in self.transcriptions],
        }
