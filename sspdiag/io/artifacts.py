"""Persist run and job summaries as parquet tables, npz archives and a markdown digest."""

from __future__ import annotations

import logging
import math
from pathlib import Path

import numpy as np
import pandas as pd

from sspdiag.analyzer import JobSummary, RunSummary

LOGGER = logging.getLogger(__name__)


def _nan_if_none(value: float | None) -> float:
    return math.nan if value is None else float(value)


def calibration_frame(summary: RunSummary) -> pd.DataFrame:
    rows = [
        {
            "run": summary.run_number,
            "channel": ch,
            "adc_per_pe": cal.adc_per_pe,
            "amplitude_peaks": cal.amplitude.n_peaks,
            "amplitude_spacings": cal.amplitude.n_spacings,
            "charge_per_pe": cal.charge_per_pe,
            "charge_peaks": cal.charge.n_peaks,
            "charge_spacings": cal.charge.n_spacings,
        }
        for ch, cal in sorted(summary.calibrations.items())
    ]
    columns = [
        "run",
        "channel",
        "adc_per_pe",
        "amplitude_peaks",
        "amplitude_spacings",
        "charge_per_pe",
        "charge_peaks",
        "charge_spacings",
    ]
    return pd.DataFrame(rows, columns=columns)


def rates_frame(summary: RunSummary) -> pd.DataFrame:
    report = summary.rates
    rows = [
        {
            "run": summary.run_number,
            "channel": ch,
            "count": entry.count,
            "rate_khz": _nan_if_none(entry.rate_khz),
            "elapsed_us": _nan_if_none(report.elapsed_us),
        }
        for ch, entry in sorted(report.channels.items())
    ]
    return pd.DataFrame(rows, columns=["run", "channel", "count", "rate_khz", "elapsed_us"])


def run_series_frame(job: JobSummary) -> pd.DataFrame:
    """Long format: one row per (channel, run, amplitude bin) with non-zero content."""

    frames = []
    for ch, series in sorted(job.run_series.items()):
        runs, ybins = np.nonzero(series.counts)
        frames.append(
            pd.DataFrame(
                {
                    "channel": ch,
                    "run": series.first_run + runs,
                    "amplitude_bin": ybins,
                    "count": series.counts[runs, ybins],
                }
            )
        )
    if not frames:
        return pd.DataFrame(columns=["channel", "run", "amplitude_bin", "count"])
    return pd.concat(frames, ignore_index=True)


def write_run_artifacts(summary: RunSummary, outdir: str | Path) -> Path:
    """Write per-run tables and histogram archives under ``outdir/r{run:03d}``."""

    run_dir = Path(outdir) / f"r{summary.run_number:03d}"
    run_dir.mkdir(parents=True, exist_ok=True)

    calibration_frame(summary).to_parquet(run_dir / "calibration.parquet", index=False)
    rates_frame(summary).to_parquet(run_dir / "rates.parquet", index=False)

    arrays: dict[str, np.ndarray] = {}
    for bins in summary.channels.values():
        for hist in (bins.amplitude, bins.charge, bins.amplitude_vs_charge, bins.average_waveform):
            if hist is not None:
                arrays[hist.name] = hist.counts
    np.savez(run_dir / "histograms.npz", **arrays)

    spectra: dict[str, np.ndarray] = {}
    for ch, spectrum in sorted(summary.spectra.items()):
        spectra[spectrum.magnitude.name] = spectrum.magnitude.contents
        spectra[f"frequencies_channel_{ch:03d}"] = spectrum.frequencies_mhz
    np.savez(run_dir / "spectra.npz", **spectra)

    LOGGER.info("run %d artifacts written to %s (%d histograms)", summary.run_number, run_dir, len(arrays))
    return run_dir


def _summary_markdown(job: JobSummary) -> str:
    lines = [
        "# SSP diagnostics summary",
        "",
        f"- Runs: {', '.join(str(r) for r in job.runs) if job.runs else 'none'}",
        f"- Accepted triggers: {job.n_triggers}",
        f"- Elapsed: {job.rates.elapsed_minutes:.6g} minutes" if job.rates.available else "- Elapsed: no data",
        f"- Global pulse amplitude entries: {int(job.pulse_amplitude.total())}",
        "",
        "| channel | first run | last run | entries |",
        "|---:|---:|---:|---:|",
    ]
    for ch, series in sorted(job.run_series.items()):
        lines.append(f"| {ch} | {series.first_run} | {series.last_run} | {int(series.total())} |")
    return "\n".join(lines) + "\n"


def write_job_artifacts(job: JobSummary, outdir: str | Path) -> Path:
    """Write cross-run series and the markdown summary; returns the summary path."""

    out = Path(outdir)
    out.mkdir(parents=True, exist_ok=True)

    arrays: dict[str, np.ndarray] = {job.pulse_amplitude.name: job.pulse_amplitude.counts}
    for series in job.run_series.values():
        arrays[series.name] = series.counts
        arrays[f"{series.name}_runs"] = series.runs
    np.savez(out / "run_series.npz", **arrays)
    run_series_frame(job).to_parquet(out / "run_series.parquet", index=False)

    summary_path = out / "summary.md"
    summary_path.write_text(_summary_markdown(job), encoding="utf-8")
    LOGGER.info("job artifacts written to %s", out)
    return summary_path
