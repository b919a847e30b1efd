"""Per-channel binned containers for one run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

import numpy as np

from sspdiag.config import (
    AMP_BINS,
    AMP_RANGE,
    CHARGE_BINS,
    CHARGE_RANGE,
    WAVEFORM_ADC_BINS,
    WAVEFORM_ADC_RANGE,
)
from sspdiag.histograms import BinAxis, Hist1D, Hist2D
from sspdiag.metrics import TriggerRecord
from sspdiag.waveform import Waveform

LOGGER = logging.getLogger(__name__)

AMP_AXIS = BinAxis(AMP_BINS, *AMP_RANGE)
CHARGE_AXIS = BinAxis(CHARGE_BINS, *CHARGE_RANGE)
WAVEFORM_ADC_AXIS = BinAxis(WAVEFORM_ADC_BINS, *WAVEFORM_ADC_RANGE)


@dataclass
class ChannelBins:
    """Containers for one optical channel; any of them may be absent."""

    channel: int
    average_waveform: Hist2D | None = None
    amplitude: Hist1D | None = None
    charge: Hist1D | None = None
    amplitude_vs_charge: Hist2D | None = None

    @property
    def has_triggers(self) -> bool:
        return self.amplitude is not None

    def create_trigger_containers(self) -> None:
        ch = self.channel
        self.amplitude = Hist1D(
            name=f"pulse_amplitude_channel_{ch:03d}",
            title=f"Pulse Amplitude for OP Channel {ch:03d};leading-edge amplitude [ADC]",
            axis=AMP_AXIS,
        )
        self.charge = Hist1D(
            name=f"integrated_charge_channel_{ch:03d}",
            title=f"Integrated Charge on OP Channel {ch:03d};integrated charge [ADC*tick]",
            axis=CHARGE_AXIS,
        )
        self.amplitude_vs_charge = Hist2D(
            name=f"pulse_amplitude_vs_integrated_charge_channel_{ch:03d}",
            title=(
                f"Pulse Amplitude vs. Integrated Charge on OP Channel {ch:03d};"
                "integrated charge [ADC*tick];leading-edge amplitude [ADC]"
            ),
            x_axis=CHARGE_AXIS,
            y_axis=AMP_AXIS,
        )

    def create_waveform_container(self, n_samples: int, sample_freq_mhz: float) -> Hist2D:
        ch = self.channel
        self.average_waveform = Hist2D(
            name=f"avgwaveform_channel_{ch:03d}",
            title=f"Average Waveform for OP Channel {ch:03d};t (us);amplitude (ADC)",
            x_axis=BinAxis(n_samples, 0.0, n_samples / sample_freq_mhz),
            y_axis=WAVEFORM_ADC_AXIS,
        )
        return self.average_waveform

    def copy(self) -> "ChannelBins":
        return ChannelBins(
            channel=self.channel,
            average_waveform=self.average_waveform.copy() if self.average_waveform else None,
            amplitude=self.amplitude.copy() if self.amplitude else None,
            charge=self.charge.copy() if self.charge else None,
            amplitude_vs_charge=self.amplitude_vs_charge.copy() if self.amplitude_vs_charge else None,
        )


class ChannelAccumulator:
    """Registry of ChannelBins keyed by optical channel, created on first sight."""

    def __init__(self, sample_freq_mhz: float) -> None:
        self.sample_freq_mhz = sample_freq_mhz
        self._index: dict[int, int] = {}
        self._bins: list[ChannelBins] = []

    def _slot(self, channel: int) -> ChannelBins:
        idx = self._index.get(channel)
        if idx is None:
            idx = len(self._bins)
            self._index[channel] = idx
            self._bins.append(ChannelBins(channel=channel))
            LOGGER.debug("new channel %d registered at slot %d", channel, idx)
        return self._bins[idx]

    def observe_waveform(self, waveform: Waveform) -> None:
        samples = np.asarray(waveform.samples, dtype=np.float64)
        if samples.size == 0:
            LOGGER.debug("empty waveform on channel %d ignored", waveform.channel)
            return

        bins = self._slot(int(waveform.channel))
        hist = bins.average_waveform or bins.create_waveform_container(samples.size, self.sample_freq_mhz)
        hist.fill(waveform.times_us(self.sample_freq_mhz), samples)

    def observe_trigger(self, record: TriggerRecord) -> None:
        bins = self._slot(record.channel)
        if not bins.has_triggers:
            bins.create_trigger_containers()
        bins.amplitude.fill(record.amplitude)  # type: ignore[union-attr]
        bins.charge.fill(record.integrated_charge)  # type: ignore[union-attr]
        bins.amplitude_vs_charge.fill(record.integrated_charge, record.amplitude)  # type: ignore[union-attr]

    def get(self, channel: int) -> ChannelBins | None:
        idx = self._index.get(channel)
        return None if idx is None else self._bins[idx]

    def channels(self) -> list[int]:
        return sorted(self._index)

    def trigger_channels(self) -> list[int]:
        return [ch for ch in self.channels() if self._bins[self._index[ch]].has_triggers]

    def __contains__(self, channel: object) -> bool:
        return channel in self._index

    def __len__(self) -> int:
        return len(self._bins)

    def __iter__(self) -> Iterator[ChannelBins]:
        for ch in self.channels():
            yield self._bins[self._index[ch]]
