"""Trim/pad, speed-correct, normalize and encode the comparison file.

Phases run strictly in order: trim, normalize, encode. Normalization in
independent mode fans out one task per channel and joins them before the
merge. Whatever happens, the job's temporary files are removed afterwards.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from driftsync.errors import EncodePipelineFailure
from driftsync.models.config import EncodeSettings, NormalizeMode
from driftsync.models.measurement import Correction
from driftsync.pipeline.job import PipelineJob
from driftsync.utils import sox
from driftsync.utils.progress import log_step, log_success


def run_job(
    job: PipelineJob,
    correction: Correction,
    settings: EncodeSettings,
    *,
    timeout: float | None = None,
) -> Path:
    """Produce ``job.target`` from ``job.source``; returns the target path.

    Raises EncodePipelineFailure naming the failed phase. The target is only
    replaced once every phase has succeeded.
    """
    job.start(timeout)
    try:
        job.enter("trim")
        log_step(
            "Trim",
            f"Adjusting offset ({correction.start_seconds:+.4f}s) "
            f"and speed (x{correction.rate:.8f})...",
        )
        trimmed = job.temp_file(".tmp.flac")
        sox.trim_and_speed(
            job.source,
            trimmed,
            start_seconds=correction.start_seconds,
            end_seconds=correction.end_seconds,
            rate=correction.rate,
            timeout=job.remaining(),
        )

        job.enter("normalize")
        inputs = _normalize(job, trimmed, settings)

        job.enter("encode")
        log_step("Encode", f"Encoding {job.target.name}...")
        partial = job.partial_target()
        sox.merge_and_encode(
            inputs,
            partial,
            merge=settings.normalize is NormalizeMode.INDEPENDENT,
            sample_rate=settings.sample_rate,
            channels=settings.channels,
            bit_depth=settings.bit_depth,
            encode_options=settings.encode_options,
            threads=settings.flac_threads,
            timeout=job.remaining(),
        )
        partial.replace(job.target)
    except EncodePipelineFailure:
        job.fail()
        raise
    except Exception as e:
        job.fail()
        raise EncodePipelineFailure(job.phase or "setup", e) from e
    except BaseException:
        job.fail()
        raise
    finally:
        job.cleanup()

    job.succeed()
    log_success(f"Wrote {job.target}")
    return job.target


def _normalize(job: PipelineJob, trimmed: Path, settings: EncodeSettings) -> list[Path]:
    """Run the configured normalization and return the files to encode."""
    if settings.normalize is NormalizeMode.INDEPENDENT:
        log_step("Normalize", f"Normalizing {settings.channels} channel(s) independently...")
        return normalize_channels(job, trimmed, settings.channels)

    if settings.normalize is NormalizeMode.COMBINED:
        log_step("Normalize", "Normalizing...")
        normalized = job.temp_file(".tmp.norm.flac")
        sox.normalize(trimmed, normalized, timeout=job.remaining())
        return [normalized]

    return [trimmed]


def _normalize_channel(
    job: PipelineJob,
    trimmed: Path,
    channel: int,
    channel_file: Path,
    normalized_file: Path,
) -> Path:
    sox.extract_channel(trimmed, channel_file, channel, timeout=job.remaining())
    sox.normalize(channel_file, normalized_file, timeout=job.remaining())
    return normalized_file


def normalize_channels(job: PipelineJob, trimmed: Path, channels: int) -> list[Path]:
    """Normalize every channel concurrently; returns outputs in channel order.

    All temporary paths are registered up front so the tasks share no mutable
    state. The first failure cancels tasks that have not started, waits for
    running ones and is re-raised, so the merge never sees partial output.
    """
    plan = [
        (channel, job.temp_file(f".tmp.{channel}.flac"), job.temp_file(f".tmp.norm.{channel}.flac"))
        for channel in range(1, channels + 1)
    ]

    with ThreadPoolExecutor(max_workers=channels) as executor:
        futures = [
            executor.submit(_normalize_channel, job, trimmed, channel, channel_file, normalized)
            for channel, channel_file, normalized in plan
        ]
        try:
            for future in as_completed(futures):
                future.result()
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    return [normalized for _, _, normalized in plan]
