"""State and temporary-file ownership for one correction run."""

from __future__ import annotations

import tempfile
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from driftsync.errors import CleanupWarning
from driftsync.utils.progress import log_warning
from driftsync.utils.retry import retry_file_op


@retry_file_op()
def _remove(path: Path) -> None:
    path.unlink(missing_ok=True)


@dataclass
class PipelineJob:
    """One comparison-file correction run.

    Every temporary path handed out by ``temp_file`` belongs to this job alone
    and is removed by ``cleanup``. Names are derived from a random id so that
    concurrent jobs never collide.
    """

    source: Path
    target: Path
    temp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    temp_files: list[Path] = field(default_factory=list)
    state: str = "pending"  # pending | running | succeeded | failed
    phase: str | None = None
    failed_phase: str | None = None
    deadline: float | None = None
    warnings: list[CleanupWarning] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.source = Path(self.source)
        self.target = Path(self.target)
        self.temp_dir = Path(self.temp_dir)

    def temp_file(self, suffix: str) -> Path:
        """Register and return a new temporary path owned by this job."""
        path = self.temp_dir / f"{self.job_id}{suffix}"
        self.temp_files.append(path)
        return path

    def partial_target(self) -> Path:
        """Temporary name beside the target; renamed onto it only on success."""
        path = self.target.with_name(f".{self.target.stem}.{self.job_id}.partial{self.target.suffix}")
        self.temp_files.append(path)
        return path

    def start(self, timeout: float | None = None) -> None:
        self.state = "running"
        self.deadline = time.monotonic() + timeout if timeout else None

    def enter(self, phase: str) -> None:
        self.phase = phase

    def remaining(self) -> float | None:
        """Seconds left before the job deadline, or None without one."""
        if self.deadline is None:
            return None
        left = self.deadline - time.monotonic()
        if left <= 0:
            raise TimeoutError(f"job {self.job_id} exceeded its deadline")
        return left

    def succeed(self) -> None:
        self.state = "succeeded"

    def fail(self) -> None:
        self.state = "failed"
        self.failed_phase = self.phase

    def cleanup(self) -> list[Path]:
        """Remove every temporary file; return the ones that could not be removed.

        Missing files are ignored and failures are logged, never raised, so
        calling this more than once is safe.
        """
        leftover: list[Path] = []
        for path in self.temp_files:
            try:
                _remove(path)
            except OSError as e:
                warning = CleanupWarning(f"Could not remove temporary file {path}: {e}")
                self.warnings.append(warning)
                log_warning(str(warning))
                leftover.append(path)
        self.temp_files = leftover
        return leftover
