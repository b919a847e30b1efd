"""Trigger-rate bookkeeping across the whole job."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

LOGGER = logging.getLogger(__name__)

FIRST_TIME_SENTINEL = 1 << 63


@dataclass(frozen=True)
class ChannelRate:
    channel: int
    count: int
    rate_khz: float | None

    @property
    def available(self) -> bool:
        return self.rate_khz is not None


@dataclass(frozen=True)
class RateReport:
    """Per-channel trigger rates; ``rate_khz`` is None wherever there is no data."""

    first_time: int | None
    last_time: int | None
    elapsed_ticks: int
    elapsed_us: float | None
    channels: dict[int, ChannelRate] = field(default_factory=dict)

    @property
    def available(self) -> bool:
        return self.elapsed_us is not None

    @property
    def elapsed_minutes(self) -> float | None:
        return None if self.elapsed_us is None else self.elapsed_us / 60.0e6

    def rate_khz(self, channel: int) -> float | None:
        entry = self.channels.get(channel)
        return None if entry is None else entry.rate_khz

    def lines(self) -> list[str]:
        """Rendered report, one line per entry."""

        out = ["!! Diagnostic Rate Report."]
        if not self.available:
            out.append(f"!! Time: no data ({self.elapsed_ticks} ticks observed).")
        else:
            out.append(f"!! Time: {self.elapsed_minutes:.6g} minutes.")
        for ch, entry in sorted(self.channels.items()):
            rate = "no data" if entry.rate_khz is None else f"{entry.rate_khz:.6g} kHz"
            out.append(f"!!    Channel {ch:>3}: {rate}")
        return out


class RateTracker:
    """Global first/last trigger timestamps and per-channel trigger counters."""

    def __init__(self) -> None:
        self.first_time = FIRST_TIME_SENTINEL
        self.last_time = 0
        self.counts: Counter[int] = Counter()

    @property
    def n_triggers(self) -> int:
        return sum(self.counts.values())

    def observe(self, channel: int, first_sample: int) -> None:
        self.first_time = min(self.first_time, int(first_sample))
        self.last_time = max(self.last_time, int(first_sample))
        self.counts[int(channel)] += 1

    def report(self, clock_frequency_mhz: float) -> RateReport:
        """Rates in kHz; elapsed time is ``(last - first) / clock`` in microseconds."""

        if clock_frequency_mhz <= 0:
            raise ValueError(f"clock frequency must be positive, got {clock_frequency_mhz}")

        if self.n_triggers == 0:
            LOGGER.info("rate report: no triggers observed")
            return RateReport(first_time=None, last_time=None, elapsed_ticks=0, elapsed_us=None)

        delta = self.last_time - self.first_time
        elapsed_us: float | None = delta / clock_frequency_mhz if delta > 0 else None
        channels = {
            ch: ChannelRate(
                channel=ch,
                count=count,
                rate_khz=None if elapsed_us is None or count == 0 else count / elapsed_us * 1000.0,
            )
            for ch, count in sorted(self.counts.items())
        }
        return RateReport(
            first_time=self.first_time,
            last_time=self.last_time,
            elapsed_ticks=delta,
            elapsed_us=elapsed_us,
            channels=channels,
        )
