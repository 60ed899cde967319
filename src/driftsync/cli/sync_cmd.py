"""driftsync sync: align the comparison file to the base file."""

from __future__ import annotations

import os

import click
from pydantic import ValidationError

from driftsync.errors import DriftSyncError, EncodePipelineFailure
from driftsync.models.config import NormalizeMode, load_config
from driftsync.utils.progress import log_error

_CPU_COUNT = os.cpu_count() or 1


def _normalize_mode(normalize: bool, independent: bool) -> NormalizeMode | None:
    if independent:
        return NormalizeMode.INDEPENDENT
    if normalize:
        return NormalizeMode.COMBINED
    return None


@click.command()
@click.argument("base_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("comparison_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--threads", "-t",
    type=click.IntRange(1, _CPU_COUNT),
    default=None,
    help=f"Number of threads to spawn while comparing audio. [default: {_CPU_COUNT}]",
)
@click.option(
    "--no-rectify",
    is_flag=True,
    help="Compare the raw waveform instead of the rectified (absolute) audio.",
)
@click.option(
    "--rate-tolerance", "-T",
    type=click.FloatRange(min=0),
    default=None,
    help="Seconds +- the measured offsets may differ from the most common offset. [default: 0.5]",
)
@click.option(
    "--sample-length", "-L",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Duration in seconds of each comparison file sample. [default: 0.125]",
)
@click.option(
    "--sample-gap", "-G",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Duration in seconds to skip between samples of the comparison file. [default: 10]",
)
@click.option(
    "--start-range", "-S",
    type=click.FloatRange(min=0),
    default=None,
    help="Duration in seconds to try to sync before the sample. [default: 180]",
)
@click.option(
    "--end-range", "-E",
    type=click.FloatRange(min=0),
    default=None,
    help="Duration in seconds to try to sync after the sample. [default: 60]",
)
@click.option(
    "--outlier-filter",
    type=click.Choice(["mode", "iqr"]),
    default=None,
    help="How outlying measurements are removed before fitting. [default: mode]",
)
@click.option(
    "--fit",
    type=click.Choice(["simple", "weighted"]),
    default=None,
    help="Least-squares fit; 'weighted' weights each window by its correlation. [default: simple]",
)
@click.option(
    "--delete-comparison", "-d",
    is_flag=True,
    help="Delete the original comparison file after successfully syncing.",
)
@click.option("--normalize", "-n", is_flag=True, help="Normalize the output audio.")
@click.option(
    "--normalize-independent", "-m",
    is_flag=True,
    help="Normalize the output audio independently for each channel.",
)
@click.option(
    "--encode-options", "-e",
    default=None,
    help="Encode options supplied to `flac`. [default: --best]",
)
@click.option(
    "--flac-threads",
    type=click.IntRange(min=1),
    default=None,
    help="Threads used by `flac` while encoding. [default: 1]",
)
@click.option(
    "--rename-string", "-r",
    default=None,
    help="String inserted before the extension, i.e. comparison.flac -> comparison.synced.flac",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Abort the resample/encode job after this many seconds.",
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file with `sync` and `output` sections; flags override it.",
)
@click.option(
    "--report",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write a JSON report of the measurements and correction.",
)
@click.option("--dry-run", is_flag=True, help="Measure the drift without writing any audio.")
def sync_cmd(
    base_file: str,
    comparison_file: str,
    threads: int | None,
    no_rectify: bool,
    rate_tolerance: float | None,
    sample_length: float | None,
    sample_gap: float | None,
    start_range: float | None,
    end_range: float | None,
    outlier_filter: str | None,
    fit: str | None,
    delete_comparison: bool,
    normalize: bool,
    normalize_independent: bool,
    encode_options: str | None,
    flac_threads: int | None,
    rename_string: str | None,
    timeout: float | None,
    config_path: str | None,
    report: str | None,
    dry_run: bool,
) -> None:
    """Sync COMPARISON_FILE to BASE_FILE."""
    try:
        config = load_config(
            config_path,
            {
                "sync": {
                    "threads": threads,
                    "rectify": False if no_rectify else None,
                    "rate_tolerance": rate_tolerance,
                    "sample_length": sample_length,
                    "sample_gap": sample_gap,
                    "start_range": start_range,
                    "end_range": end_range,
                    "outlier_filter": outlier_filter,
                    "fit": fit,
                },
                "output": {
                    "normalize": _normalize_mode(normalize, normalize_independent),
                    "encode_options": encode_options,
                    "flac_threads": flac_threads,
                    "rename_string": rename_string,
                    "delete_comparison": delete_comparison or None,
                    "timeout_seconds": timeout,
                },
            },
        )
    except ValidationError as e:
        log_error(f"Invalid configuration:\n{e}")
        raise SystemExit(2)

    from driftsync.pipeline.sync import sync_resample_encode

    try:
        sync_resample_encode(
            base_file,
            comparison_file,
            config,
            dry_run=dry_run,
            report_path=report,
        )
    except EncodePipelineFailure as e:
        log_error(f"Encoding failed during the {e.phase} phase: {e.cause}")
        raise SystemExit(1)
    except DriftSyncError as e:
        log_error(f"Sync failed: {e}")
        raise SystemExit(1)
