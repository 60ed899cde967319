"""End-to-end sync: measure the drift, then resample and encode."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from driftsync.core.correlate import correlate_windows
from driftsync.core.drift import estimate_drift
from driftsync.core.sampler import Window, sample_windows
from driftsync.errors import DriftSyncError
from driftsync.models.config import AppConfig, EncodeSettings, SyncConfig
from driftsync.models.measurement import AlignmentMeasurement, Correction
from driftsync.models.report import SyncReport
from driftsync.pipeline.job import PipelineJob
from driftsync.pipeline.resample import run_job
from driftsync.utils.ffmpeg import decode_audio, decode_blocks
from driftsync.utils.ffprobe import probe_audio
from driftsync.utils.io import synced_name, write_json
from driftsync.utils.process import require_tools
from driftsync.utils.progress import fraction_progress, log, log_step, log_success, log_warning, show_summary


def decode_windows(path: Path, sample_rate: int, config: SyncConfig) -> list[Window]:
    """Decode the comparison file and cut it into correlation windows."""
    blocks, total = decode_blocks(path, sample_rate, rectify=config.rectify)
    return list(
        sample_windows(
            blocks,
            total,
            config.sample_length,
            config.sample_gap,
            config.start_range,
            config.end_range,
            sample_rate,
        )
    )


def measure(
    base_file: Path,
    comparison_file: Path,
    sample_rate: int,
    config: SyncConfig,
) -> tuple[list[AlignmentMeasurement], int]:
    """Decode both files concurrently and correlate every comparison window.

    Returns the measurements and the base stream's length in samples. The
    decoded buffers never leave this function, so they are released as soon
    as correlation finishes.
    """
    log_step("Decode", f"Decoding both files at {sample_rate} Hz...")
    with ThreadPoolExecutor(max_workers=2) as executor:
        base_future = executor.submit(decode_audio, base_file, sample_rate, rectify=config.rectify)
        windows_future = executor.submit(decode_windows, comparison_file, sample_rate, config)
        base = base_future.result()
        windows = windows_future.result()

    log_step("Sync", f"Correlating {len(windows)} windows on {config.threads} thread(s)...")
    with fraction_progress("Synchronizing files...") as update:
        measurements = correlate_windows(
            base, windows, sample_rate, threads=config.threads, progress=update
        )
    return measurements, len(base)


def sync_resample_encode(
    base_file: Path | str,
    comparison_file: Path | str,
    config: AppConfig | None = None,
    *,
    dry_run: bool = False,
    report_path: Path | str | None = None,
) -> SyncReport:
    """Align ``comparison_file`` to ``base_file`` and write the corrected copy.

    With ``dry_run`` only the drift is measured; no output is written.
    """
    config = config or AppConfig()
    base_file = Path(base_file)
    comparison_file = Path(comparison_file)
    output_file = synced_name(comparison_file, config.output.rename_string)
    if output_file == comparison_file:
        raise DriftSyncError("Output would overwrite the comparison file; set a rename string")

    require_tools("ffmpeg", "ffprobe", *(() if dry_run else ("sox", "flac")))
    started = time.time()

    base_info = probe_audio(base_file)
    comparison_info = probe_audio(comparison_file)
    sample_rate = max(base_info.sample_rate, comparison_info.sample_rate)

    measurements, base_samples = measure(base_file, comparison_file, sample_rate, config.sync)

    drift = estimate_drift(
        measurements,
        config.sync.rate_tolerance,
        outlier_filter=config.sync.outlier_filter,
        weighted=config.sync.fit == "weighted",
    )
    correction = Correction(
        start_seconds=drift.start_offset,
        end_seconds=base_samples / sample_rate,
        rate=drift.rate(config.sync.sample_gap),
    )
    show_summary(
        "Drift estimate",
        {
            "Windows": len(measurements),
            "Outliers removed": drift.outliers,
            "Trim start": f"{correction.start_seconds:+.6f}s",
            "Trim end": f"{correction.end_seconds:.6f}s",
            "Rate": f"{correction.rate:.10f}",
        },
    )

    report = SyncReport(
        base_file=str(base_file),
        comparison_file=str(comparison_file),
        sample_rate=sample_rate,
        windows=len(measurements),
        drift=drift,
        correction=correction,
        measurements=measurements,
        dry_run=dry_run,
    )

    if not dry_run:
        settings = EncodeSettings(
            sample_rate=comparison_info.sample_rate,
            bit_depth=comparison_info.output_bit_depth,
            channels=comparison_info.channels,
            normalize=config.output.normalize,
            encode_options=config.output.encode_options,
            flac_threads=config.output.flac_threads,
        )
        job = PipelineJob(source=comparison_file, target=output_file)
        run_job(job, correction, settings, timeout=config.output.timeout_seconds)
        report.output_file = str(output_file)

        if config.output.delete_comparison:
            log("Deleting comparison file...")
            try:
                comparison_file.unlink()
                report.comparison_deleted = True
            except OSError as e:
                log_warning(f"Failed to delete the comparison file: {e}")

    if report_path:
        write_json(report_path, report.model_dump(mode="json"))

    log_success(f"Done in {time.time() - started:.0f}s")
    return report
