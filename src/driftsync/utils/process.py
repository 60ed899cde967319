"""Subprocess runner for the external audio tools."""

from __future__ import annotations

import subprocess
import threading
import time
from shutil import which
from typing import IO, Callable

from driftsync.errors import DriftSyncError, ToolError
from driftsync.utils.progress import console


def require_tools(*names: str) -> None:
    """Make sure the given executables are discoverable on PATH."""
    missing = [name for name in names if which(name) is None]
    if missing:
        raise DriftSyncError(f"Required tool(s) missing from PATH: {', '.join(missing)}")


def forward_stderr(stderr: str | bytes | None) -> None:
    """Echo a tool's diagnostic output without interpreting it."""
    if not stderr:
        return
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    for line in stderr.rstrip().splitlines():
        console.print(f"[dim]{line}[/dim]", highlight=False, markup=False)


def drain(stream: IO[bytes]) -> Callable[[], bytes]:
    """Read ``stream`` to EOF on a background thread.

    Returns a function that waits for the reader and gives back everything
    it collected. stderr must be drained this way while stdout is read.
    """
    chunks: list[bytes] = []
    reader = threading.Thread(target=lambda: chunks.append(stream.read()), daemon=True)
    reader.start()

    def collect() -> bytes:
        reader.join()
        return b"".join(chunks)

    return collect


def run_tool(
    cmd: list[str],
    *,
    timeout: float | None = None,
    capture_stdout: bool = False,
) -> subprocess.CompletedProcess:
    """Run an external command, raising ToolError on a non-zero exit or timeout."""
    cmd = [str(arg) for arg in cmd]
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE if capture_stdout else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ToolError(cmd, -1, f"timed out after {timeout:.1f}s") from e
    except FileNotFoundError as e:
        raise ToolError(cmd, 127, f"{cmd[0]}: command not found") from e

    forward_stderr(result.stderr)
    if result.returncode != 0:
        raise ToolError(cmd, result.returncode, result.stderr or "")
    return result


def run_piped(
    producer: list[str],
    consumer: list[str],
    *,
    timeout: float | None = None,
) -> None:
    """Stream ``producer``'s stdout into ``consumer``'s stdin.

    Both processes must exit with status 0. The producer is checked first so
    that a failure upstream is reported instead of the consumer's truncated-input
    error.
    """
    producer = [str(arg) for arg in producer]
    consumer = [str(arg) for arg in consumer]

    try:
        upstream = subprocess.Popen(producer, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except FileNotFoundError as e:
        raise ToolError(producer, 127, f"{producer[0]}: command not found") from e
    try:
        downstream = subprocess.Popen(
            consumer,
            stdin=upstream.stdout,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError as e:
        upstream.kill()
        upstream.wait()
        upstream.stdout.close()
        upstream.stderr.close()
        raise ToolError(consumer, 127, f"{consumer[0]}: command not found") from e

    # Let the producer see SIGPIPE if the consumer exits early.
    upstream.stdout.close()
    collect_upstream = drain(upstream.stderr)

    deadline = None if timeout is None else time.monotonic() + timeout
    try:
        _, down_err = downstream.communicate(timeout=timeout)
        upstream.wait(timeout=None if deadline is None else max(0.0, deadline - time.monotonic()))
    except subprocess.TimeoutExpired as e:
        for proc in (upstream, downstream):
            proc.kill()
            proc.wait()
        collect_upstream()
        raise ToolError(consumer, -1, f"timed out after {timeout:.1f}s") from e
    up_err = collect_upstream()
    upstream.stderr.close()

    forward_stderr(up_err)
    forward_stderr(down_err)
    if upstream.returncode != 0:
        raise ToolError(producer, upstream.returncode, (up_err or b"").decode("utf-8", "replace"))
    if downstream.returncode != 0:
        raise ToolError(consumer, downstream.returncode, (down_err or b"").decode("utf-8", "replace"))
