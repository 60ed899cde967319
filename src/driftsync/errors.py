"""Exception types raised by driftsync."""

from __future__ import annotations


class DriftSyncError(Exception):
    """Base class for all driftsync failures."""


class ToolError(DriftSyncError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, cmd: list[str], returncode: int, stderr: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        message = f"{cmd[0]} failed (rc={returncode}): {' '.join(cmd)}"
        if stderr:
            message += f"\n{stderr.strip()[:500]}"
        super().__init__(message)


class DecodeFailure(ToolError):
    """Raised when a file cannot be decoded or has no audio stream."""


class DriftEstimationError(DriftSyncError, ValueError):
    """Raised when the drift line cannot be fitted."""


class InsufficientDataError(DriftEstimationError):
    """Fewer than two measurements survived outlier removal."""


class DegenerateFitError(DriftEstimationError):
    """The regression denominator is zero (all x values identical)."""


class EncodePipelineFailure(DriftSyncError):
    """Raised when a phase of the trim/normalize/encode pipeline fails."""

    def __init__(self, phase: str, cause: Exception):
        self.phase = phase
        self.cause = cause
        self.cmd = getattr(cause, "cmd", None)
        self.returncode = getattr(cause, "returncode", None)
        super().__init__(f"{phase} phase failed: {cause}")


class CleanupWarning(UserWarning):
    """A temporary file could not be removed."""
