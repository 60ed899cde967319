"""Root CLI group for driftsync."""

from __future__ import annotations

import click

from driftsync import __version__


@click.group()
@click.version_option(version=__version__, prog_name="driftsync")
def cli() -> None:
    """driftsync: align a recording to a reference by offset and playback rate."""


# Import and register subcommands
from driftsync.cli.sync_cmd import sync_cmd  # noqa: E402
from driftsync.cli.probe_cmd import probe_cmd  # noqa: E402

cli.add_command(sync_cmd, "sync")
cli.add_command(probe_cmd, "probe")
