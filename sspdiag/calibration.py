"""Photoelectron-scale estimates from peak spacing in pulse distributions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np
from scipy.ndimage import gaussian_filter1d
from scipy.signal import find_peaks

from sspdiag.accumulator import ChannelBins
from sspdiag.config import PeakSearchPolicy
from sspdiag.histograms import Hist1D

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeakScale:
    """Mean accepted spacing between adjacent peaks; ``value`` is nan when unavailable."""

    value: float
    n_peaks: int
    n_spacings: int

    @property
    def available(self) -> bool:
        return not math.isnan(self.value)


@dataclass(frozen=True)
class ChannelCalibration:
    channel: int
    amplitude: PeakScale
    charge: PeakScale

    @property
    def adc_per_pe(self) -> float:
        return self.amplitude.value

    @property
    def charge_per_pe(self) -> float:
        return self.charge.value


def search_peaks(hist: Hist1D, sigma: float, threshold: float, max_peaks: int) -> np.ndarray:
    """Peak positions (bin centers) ordered by descending smoothed height.

    Contents are smoothed with a Gaussian of ``sigma`` bins; a local maximum
    counts as a peak when its smoothed height is at least ``threshold`` times
    the highest smoothed bin.
    """

    contents = np.asarray(hist.contents, dtype=np.float64)
    if contents.size < 3 or not np.any(contents > 0):
        return np.array([], dtype=np.float64)

    smoothed = gaussian_filter1d(contents, sigma=sigma, mode="constant", cval=0.0)
    top = float(smoothed.max())
    if top <= 0.0:
        return np.array([], dtype=np.float64)

    # zero padding lets a maximum in the first or last bin count as a peak
    idx, props = find_peaks(np.pad(smoothed, 1), height=threshold * top)
    idx -= 1
    if idx.size == 0:
        return np.array([], dtype=np.float64)

    order = np.argsort(-props["peak_heights"], kind="stable")[:max_peaks]
    return hist.axis.centers[idx[order]]


def peak_spacing_scale(positions: np.ndarray, low: float, high: float) -> PeakScale:
    """Mean spacing of adjacent sorted peaks that fall inside ``[low, high]``.

    The lowest peak (pedestal) is excluded: spacings start from the second
    peak. Fewer than three peaks or no accepted spacing gives nan.
    """

    peaks = np.sort(np.asarray(positions, dtype=np.float64))
    accepted: list[float] = []
    for p in range(1, len(peaks) - 1):
        diff = float(peaks[p + 1] - peaks[p])
        if diff > high or diff < low:
            continue
        accepted.append(diff)

    value = float(np.mean(accepted)) if accepted else math.nan
    return PeakScale(value=value, n_peaks=int(len(peaks)), n_spacings=len(accepted))


class PeakCalibrator:
    """Applies the amplitude and charge peak-search policies to one channel."""

    def __init__(self, amplitude_policy: PeakSearchPolicy, charge_policy: PeakSearchPolicy) -> None:
        self.amplitude_policy = amplitude_policy
        self.charge_policy = charge_policy

    def scale(self, hist: Hist1D | None, policy: PeakSearchPolicy) -> PeakScale:
        if hist is None:
            return PeakScale(value=math.nan, n_peaks=0, n_spacings=0)
        positions = search_peaks(hist, sigma=policy.sigma, threshold=policy.threshold, max_peaks=policy.max_peaks)
        return peak_spacing_scale(positions, low=policy.low, high=policy.high)

    def calibrate(self, bins: ChannelBins) -> ChannelCalibration:
        result = ChannelCalibration(
            channel=bins.channel,
            amplitude=self.scale(bins.amplitude, self.amplitude_policy),
            charge=self.scale(bins.charge, self.charge_policy),
        )
        LOGGER.info(
            "OpDet Channel %d: LE %s ADC/PE, IC %s charge/PE",
            result.channel,
            _fmt_scale(result.amplitude),
            _fmt_scale(result.charge),
        )
        return result


def _fmt_scale(scale: PeakScale) -> str:
    if not scale.available:
        return f"unavailable ({scale.n_peaks} peaks)"
    return f"{scale.value:.4g}"
