"""Job record for tracking background tasks."""
import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobType(str, enum.Enum):
    """Job type enumeration."""
    ANALYZE = "analyze"
    EXPORT = "export"
    PREVIEW = "preview"


class JobStatus(str, enum.Enum):
    """Job status enumeration."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class Job:
    """A background task held in memory for the lifetime of the process."""
    job_type: JobType
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: JobStatus = JobStatus.PENDING

    # Progress tracking
    progress: float = 0.0  # 0.0 to 100.0
    message: Optional[str] = None

    # Results/errors
    result: Optional[Any] = None
    error: Optional[str] = None
    output_path: Optional[Path] = None

    # Timestamps
    created_at: datetime = field(default_factory=_utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def __repr__(self):
        return f"<Job(id={self.id}, type={self.job_type.value}, status={self.status.value})>"

    @property
    def has_output(self) -> bool:
        return self.output_path is not None and Path(self.output_path).exists()

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "job_type": self.job_type.value,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
            "result": self.result,
            "error": self.error,
            "has_output": self.has_output,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
