"""Cross-run amplitude distributions: one row per run number, per channel."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from sspdiag.histograms import BinAxis, Hist1D

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSeries:
    """Amplitude distribution vs run number over ``[first_run, last_run + 1)``.

    ``counts[r - first_run, iy]`` holds amplitude bin ``iy`` (flows included)
    of run ``r``.
    """

    channel: int
    first_run: int
    last_run: int
    amplitude_axis: BinAxis
    counts: np.ndarray

    @classmethod
    def empty(cls, channel: int, run_number: int, amplitude_axis: BinAxis) -> "RunSeries":
        counts = np.zeros((1, amplitude_axis.nbins + 2), dtype=np.float64)
        return cls(channel=channel, first_run=run_number, last_run=run_number, amplitude_axis=amplitude_axis, counts=counts)

    @property
    def name(self) -> str:
        return f"PulseAmpDistVsRun_channel_{self.channel:03d}"

    @property
    def title(self) -> str:
        return (
            f"Pulse Amplitude Distribution vs Run Number for OP Channel {self.channel:03d};"
            "run number;leading-edge amplitude [ADC]"
        )

    @property
    def run_axis(self) -> BinAxis:
        return BinAxis(self.last_run - self.first_run + 1, float(self.first_run), float(self.last_run + 1))

    @property
    def runs(self) -> np.ndarray:
        return np.arange(self.first_run, self.last_run + 1, dtype=np.int64)

    def covers(self, run_number: int) -> bool:
        return self.first_run <= run_number <= self.last_run

    def row(self, run_number: int) -> np.ndarray:
        """Amplitude bins of one run (read-only copy); zeros outside the covered range."""

        if not self.covers(run_number):
            return np.zeros(self.amplitude_axis.nbins + 2, dtype=np.float64)
        return self.counts[run_number - self.first_run].copy()

    def total(self) -> float:
        return float(self.counts.sum())

    def rebuild(self, first_run: int, last_run: int) -> "RunSeries":
        """New series over a wider run range with every existing bin copied to the same run."""

        if first_run > self.first_run or last_run < self.last_run:
            raise ValueError(
                f"rebuild range [{first_run}, {last_run}] does not cover [{self.first_run}, {self.last_run}]"
            )
        counts = np.zeros((last_run - first_run + 1, self.amplitude_axis.nbins + 2), dtype=np.float64)
        start = self.first_run - first_run
        counts[start : start + self.counts.shape[0]] = self.counts
        return RunSeries(
            channel=self.channel,
            first_run=first_run,
            last_run=last_run,
            amplitude_axis=self.amplitude_axis,
            counts=counts,
        )

    def with_run(self, run_number: int, hist: Hist1D) -> "RunSeries":
        """New series with ``hist`` added bin-by-bin into the row of ``run_number``."""

        if hist.axis != self.amplitude_axis:
            raise ValueError(f"{self.name}: amplitude binning {hist.axis} does not match {self.amplitude_axis}")
        series = self
        if not self.covers(run_number):
            series = self.rebuild(min(self.first_run, run_number), max(self.last_run, run_number))
        counts = series.counts.copy()
        counts[run_number - series.first_run] += hist.counts
        return RunSeries(
            channel=series.channel,
            first_run=series.first_run,
            last_run=series.last_run,
            amplitude_axis=series.amplitude_axis,
            counts=counts,
        )


class RunAggregator:
    """Owns one RunSeries per channel for the lifetime of a job."""

    def __init__(self) -> None:
        self._series: dict[int, RunSeries] = {}

    def merge(self, run_number: int, channel: int, amplitude: Hist1D) -> RunSeries:
        current = self._series.get(channel)
        if current is None:
            current = RunSeries.empty(channel, run_number, amplitude.axis)
        elif not current.covers(run_number):
            LOGGER.debug(
                "channel %d: extending run axis [%d, %d] to include run %d",
                channel,
                current.first_run,
                current.last_run,
                run_number,
            )

        merged = current.with_run(run_number, amplitude)
        self._series[channel] = merged
        return merged

    def series(self, channel: int) -> RunSeries | None:
        return self._series.get(channel)

    def channels(self) -> list[int]:
        return sorted(self._series)

    def snapshot(self) -> dict[int, RunSeries]:
        """Independent copies of every series, keyed by channel."""

        return {
            ch: RunSeries(
                channel=s.channel,
                first_run=s.first_run,
                last_run=s.last_run,
                amplitude_axis=s.amplitude_axis,
                counts=s.counts.copy(),
            )
            for ch, s in sorted(self._series.items())
        }
