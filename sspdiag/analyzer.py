"""SSP diagnostic analyzer: per-event decoding and per-run/job summaries.

The host calls :meth:`SSPDiagnosticAnalyzer.on_run_start`,
:meth:`~SSPDiagnosticAnalyzer.on_event` for every event,
:meth:`~SSPDiagnosticAnalyzer.on_run_end` and finally
:meth:`~SSPDiagnosticAnalyzer.on_job_end`. Job-lifetime state (cross-run
series, rate counters, global amplitude histogram) lives in :class:`JobState`;
per-run distributions live in a :class:`RunContext` that is replaced at every
run start.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from sspdiag.accumulator import ChannelAccumulator, ChannelBins
from sspdiag.calibration import ChannelCalibration, PeakCalibrator
from sspdiag.config import GLOBAL_AMP_BINS, GLOBAL_AMP_RANGE, AnalysisConfig
from sspdiag.decoder.fragment import FragmentSet, InvalidFragmentError, RawFragment, iter_triggers
from sspdiag.decoder.header import HeaderDecodeError, decode_header, format_header
from sspdiag.histograms import BinAxis, Hist1D
from sspdiag.metrics import extract_record
from sspdiag.rate import RateReport, RateTracker
from sspdiag.run_series import RunAggregator, RunSeries
from sspdiag.waveform import Waveform, WaveformSpectrum, average_waveform_spectrum

LOGGER = logging.getLogger(__name__)


@dataclass
class EventStats:
    fragments: int = 0
    triggers: int = 0
    accepted: int = 0
    malformed: int = 0
    bad_timestamp: int = 0
    waveforms: int = 0
    skipped: bool = False

    def add(self, other: "EventStats") -> None:
        self.fragments += other.fragments
        self.triggers += other.triggers
        self.accepted += other.accepted
        self.malformed += other.malformed
        self.bad_timestamp += other.bad_timestamp
        self.waveforms += other.waveforms


@dataclass
class JobState:
    aggregator: RunAggregator = field(default_factory=RunAggregator)
    rates: RateTracker = field(default_factory=RateTracker)
    pulse_amplitude: Hist1D = field(
        default_factory=lambda: Hist1D(
            name="pulseamplitude",
            title="Pulse Amplitude;leading-edge amplitude [ADC]",
            axis=BinAxis(GLOBAL_AMP_BINS, *GLOBAL_AMP_RANGE),
        )
    )
    runs_seen: list[int] = field(default_factory=list)
    clock_frequency_mhz: float | None = None


@dataclass
class RunContext:
    run_number: int | None
    accumulator: ChannelAccumulator
    stats: EventStats = field(default_factory=EventStats)
    events: int = 0


@dataclass(frozen=True)
class RunSummary:
    run_number: int
    calibrations: dict[int, ChannelCalibration]
    spectra: dict[int, WaveformSpectrum]
    channels: dict[int, ChannelBins]
    rates: RateReport
    stats: EventStats
    events: int


@dataclass(frozen=True)
class JobSummary:
    run_series: dict[int, RunSeries]
    pulse_amplitude: Hist1D
    runs: list[int]
    n_triggers: int
    rates: RateReport


class SSPDiagnosticAnalyzer:
    """Library entry points for SSP trigger-rate, amplitude and calibration diagnostics."""

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or AnalysisConfig()
        self.calibrator = PeakCalibrator(self.config.amplitude_policy, self.config.charge_policy)
        self.job = JobState()
        self._run: RunContext | None = None
        for line in self.config.describe():
            LOGGER.debug(line)

    @property
    def run(self) -> RunContext:
        if self._run is None:
            LOGGER.debug("event before run start; opening an unnumbered run context")
            self._run = self._new_run(None)
        return self._run

    def _new_run(self, run_number: int | None) -> RunContext:
        return RunContext(run_number=run_number, accumulator=ChannelAccumulator(self.config.sample_freq_mhz))

    def on_run_start(self, run_number: int | None = None) -> RunContext:
        """Discard per-run distributions; job-level series and rate counters are kept."""

        self._run = self._new_run(run_number)
        LOGGER.info("run %s started", run_number if run_number is not None else "?")
        return self._run

    def on_event(self, fragments: FragmentSet | None, waveforms: Iterable[Waveform] = ()) -> EventStats:
        """Decode one event's SSP fragments and waveforms into the run containers."""

        stats = EventStats()
        if fragments is None:
            LOGGER.warning("Raw SSP data not found in event; skipping")
            stats.skipped = True
            return stats
        if not fragments.valid:
            LOGGER.error("SSP fragment collection is NOT VALID (run %s)", self.run.run_number)
            raise InvalidFragmentError("raw NOT VALID")

        ctx = self.run
        for waveform in waveforms:
            ctx.accumulator.observe_waveform(waveform)
            stats.waveforms += 1

        LOGGER.debug("Number of fragments = %d", len(fragments))
        for fragment in fragments.ordered():
            stats.fragments += 1
            self._process_fragment(fragment, ctx, stats)

        ctx.events += 1
        ctx.stats.add(stats)
        return stats

    def _process_fragment(self, fragment: RawFragment, ctx: RunContext, stats: EventStats) -> None:
        cfg = self.config
        for trigger in iter_triggers(fragment):
            stats.triggers += 1
            try:
                header = decode_header(trigger.raw_header, cfg.channel_map)
            except HeaderDecodeError as exc:
                LOGGER.debug("fragment %d word %d: skipping trigger: %s", fragment.sequence, trigger.offset_words, exc)
                stats.malformed += 1
                continue

            record = extract_record(header, cfg.windows, cfg.timestamp_sanity_limit)
            if record is None:
                LOGGER.info(
                    "Problem timestamp at %d\n%s",
                    header.global_first_sample,
                    format_header(trigger.raw_header),
                )
                stats.bad_timestamp += 1
                continue

            self.job.pulse_amplitude.fill(record.amplitude)
            ctx.accumulator.observe_trigger(record)
            self.job.rates.observe(record.channel, record.first_sample)
            stats.accepted += 1

    def on_run_end(self, run_number: int, clock_frequency_mhz: float | None = None) -> RunSummary:
        """Calibrate, transform and merge this run's distributions; report rates."""

        ctx = self.run
        if ctx.run_number is not None and ctx.run_number != run_number:
            LOGGER.warning("run end for %d but context was opened for run %d", run_number, ctx.run_number)

        clock = self.config.clock_frequency_mhz if clock_frequency_mhz is None else clock_frequency_mhz
        rates = self.job.rates.report(clock)
        self.job.clock_frequency_mhz = clock

        acc = ctx.accumulator
        calibrations: dict[int, ChannelCalibration] = {}
        spectra: dict[int, WaveformSpectrum] = {}
        for bins in acc:
            if bins.amplitude is not None:
                calibrations[bins.channel] = self.calibrator.calibrate(bins)
                self.job.aggregator.merge(run_number, bins.channel, bins.amplitude)
            if bins.average_waveform is not None:
                spectrum = average_waveform_spectrum(bins.channel, bins.average_waveform)
                if spectrum is not None:
                    spectra[bins.channel] = spectrum

        for line in rates.lines():
            LOGGER.info(line)

        if run_number not in self.job.runs_seen:
            self.job.runs_seen.append(run_number)
        self._run = None

        LOGGER.info(
            "run %d finished: %d events, %d triggers (%d accepted, %d malformed, %d bad timestamps), %d channels",
            run_number,
            ctx.events,
            ctx.stats.triggers,
            ctx.stats.accepted,
            ctx.stats.malformed,
            ctx.stats.bad_timestamp,
            len(acc),
        )
        return RunSummary(
            run_number=run_number,
            calibrations=calibrations,
            spectra=spectra,
            channels={bins.channel: bins for bins in acc},
            rates=rates,
            stats=ctx.stats,
            events=ctx.events,
        )

    def on_job_end(self) -> JobSummary:
        """Materialize every cross-run series for external persistence."""

        clock = self.job.clock_frequency_mhz
        if clock is None:
            clock = self.config.clock_frequency_mhz
        series = self.job.aggregator.snapshot()
        for ch, s in series.items():
            LOGGER.info("channel %d: run series over runs %d..%d, %.0f entries", ch, s.first_run, s.last_run, s.total())
        return JobSummary(
            run_series=series,
            pulse_amplitude=self.job.pulse_amplitude.copy(),
            runs=list(self.job.runs_seen),
            n_triggers=self.job.rates.n_triggers,
            rates=self.job.rates.report(clock),
        )
