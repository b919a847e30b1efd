"""Reconstructed optical waveforms and average-waveform spectra."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sspdiag.histograms import BinAxis, Hist1D, Hist2D


@dataclass(frozen=True)
class Waveform:
    """One optical-detector pulse: channel id and ADC samples in tick order."""

    channel: int
    samples: np.ndarray
    timestamp: float = 0.0

    def __len__(self) -> int:
        return int(len(self.samples))

    def times_us(self, sample_freq_mhz: float) -> np.ndarray:
        """Sample times at the centers of their tick bins."""

        return (np.arange(len(self.samples), dtype=np.float64) + 0.5) / sample_freq_mhz


@dataclass(frozen=True)
class WaveformSpectrum:
    channel: int
    profile: np.ndarray
    magnitude: Hist1D

    @property
    def frequencies_mhz(self) -> np.ndarray:
        return self.magnitude.axis.centers


def average_waveform_spectrum(channel: int, average: Hist2D) -> WaveformSpectrum | None:
    """FFT magnitude of the X-profile of an average-waveform histogram.

    The output has ``nbins // 2`` bins over ``[0, 1 / (2 dt))`` MHz with the
    unnormalized magnitude of the forward transform. Returns None when the
    waveform is too short to yield a frequency bin.
    """

    n = average.x_axis.nbins
    if n < 2:
        return None

    profile = average.profile_x()
    dt = average.x_axis.width
    f_max = 1.0 / (2.0 * dt)
    magnitude = np.abs(np.fft.fft(profile))[: n // 2]

    hist = Hist1D.from_contents(
        name=f"waveformFFT_channel_{channel:03d}",
        title=f"Average Waveform FFT for OP Channel {channel:03d};f (MHz);power",
        axis=BinAxis(n // 2, 0.0, f_max),
        contents=magnitude,
    )
    return WaveformSpectrum(channel=channel, profile=profile, magnitude=hist)
