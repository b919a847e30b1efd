from __future__ import annotations

import math

import numpy as np
import pytest

from sspdiag.accumulator import AMP_AXIS, CHARGE_AXIS, ChannelBins
from sspdiag.calibration import PeakCalibrator, peak_spacing_scale, search_peaks
from sspdiag.config import PeakSearchPolicy
from sspdiag.histograms import Hist1D

AMPLITUDE_POLICY = PeakSearchPolicy(sigma=1.5, low=10.0, high=20.0)
CHARGE_POLICY = PeakSearchPolicy(sigma=2.5, low=1000.0, high=1800.0)


def _spikes(positions: list[float], heights: list[float]) -> Hist1D:
    hist = Hist1D("amp", "amp", AMP_AXIS)
    for pos, height in zip(positions, heights):
        hist.fill(pos, weight=height)
    return hist


def test_search_peaks_orders_by_height_and_caps() -> None:
    hist = _spikes([1.0, 15.0, 29.0], [300.0, 1000.0, 600.0])
    assert search_peaks(hist, sigma=1.5, threshold=0.001, max_peaks=100).tolist() == pytest.approx([15.0, 29.0, 1.0])
    assert search_peaks(hist, sigma=1.5, threshold=0.001, max_peaks=2).tolist() == pytest.approx([15.0, 29.0])


def test_search_peaks_empty_histogram() -> None:
    assert search_peaks(Hist1D("amp", "amp", AMP_AXIS), sigma=1.5, threshold=0.001, max_peaks=100).size == 0


def test_multi_peak_spectrum_gives_mean_spacing() -> None:
    hist = _spikes([1.0, 15.0, 29.0, 43.0, 57.0], [1000.0, 800.0, 600.0, 400.0, 200.0])
    scale = PeakCalibrator(AMPLITUDE_POLICY, CHARGE_POLICY).scale(hist, AMPLITUDE_POLICY)

    assert scale.available
    assert scale.n_peaks == 5
    assert scale.n_spacings == 3
    assert scale.value == pytest.approx(14.0)


def test_pedestal_spacing_is_excluded() -> None:
    scale = peak_spacing_scale(np.array([0.0, 15.0, 30.0, 90.0]), low=10.0, high=20.0)
    assert scale.value == pytest.approx(15.0)
    assert scale.n_spacings == 1


def test_fewer_than_three_peaks_is_unavailable() -> None:
    scale = peak_spacing_scale(np.array([15.0, 30.0]), low=10.0, high=20.0)
    assert math.isnan(scale.value)
    assert not scale.available


def test_no_spacing_in_window_is_unavailable() -> None:
    hist = _spikes([1.0, 41.0, 81.0], [1000.0, 500.0, 250.0])
    scale = PeakCalibrator(AMPLITUDE_POLICY, CHARGE_POLICY).scale(hist, AMPLITUDE_POLICY)
    assert scale.n_peaks == 3
    assert math.isnan(scale.value)


def test_calibrate_channel_without_charge() -> None:
    bins = ChannelBins(channel=3, amplitude=_spikes([1.0, 15.0, 29.0, 43.0], [900.0, 600.0, 300.0, 100.0]))
    result = PeakCalibrator(AMPLITUDE_POLICY, CHARGE_POLICY).calibrate(bins)

    assert result.channel == 3
    assert result.adc_per_pe == pytest.approx(14.0)
    assert math.isnan(result.charge_per_pe)


def test_peak_in_first_bin_is_found() -> None:
    hist = Hist1D("charge", "charge", CHARGE_AXIS)
    for pos, height in zip([50.0, 1450.0, 2950.0], [1000.0, 600.0, 300.0]):
        hist.fill(pos, weight=height)

    assert search_peaks(hist, sigma=2.5, threshold=0.001, max_peaks=100).tolist() == pytest.approx([50.0, 1450.0, 2950.0])
    scale = PeakCalibrator(AMPLITUDE_POLICY, CHARGE_POLICY).scale(hist, CHARGE_POLICY)
    assert scale.n_peaks == 3
    assert scale.n_spacings == 1
    assert scale.value == pytest.approx(1500.0)
