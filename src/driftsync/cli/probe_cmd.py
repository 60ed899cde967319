"""driftsync probe: show audio stream metadata."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from driftsync.errors import DriftSyncError
from driftsync.utils.ffprobe import probe_audio
from driftsync.utils.progress import log_error

console = Console()


@click.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
def probe_cmd(files: tuple[str, ...]) -> None:
    """Show the first audio stream of each FILE."""
    table = Table(title="Audio streams", show_lines=False)
    table.add_column("File", style="bold")
    table.add_column("Codec")
    table.add_column("Sample rate", justify="right")
    table.add_column("Channels", justify="right")
    table.add_column("Bit depth", justify="right")
    table.add_column("Duration", justify="right")

    failed = False
    for path in files:
        try:
            info = probe_audio(path)
        except (DriftSyncError, FileNotFoundError) as e:
            log_error(f"{path}: {e}")
            failed = True
            continue
        table.add_row(
            Path(path).name,
            info.codec,
            f"{info.sample_rate} Hz",
            str(info.channels),
            str(info.bit_depth) if info.bit_depth else "n/a",
            f"{info.duration_seconds:.3f}s",
        )

    console.print(table)
    if failed:
        raise SystemExit(1)
