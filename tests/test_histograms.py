from __future__ import annotations

import numpy as np
import pytest

from sspdiag.histograms import BinAxis, Hist1D, Hist2D


def test_find_bins_with_flows() -> None:
    axis = BinAxis(10, 0.0, 10.0)
    values = np.array([-1.0, 0.0, 0.5, 9.99, 10.0, np.inf, -np.inf])
    assert axis.find_bins(values).tolist() == [0, 1, 1, 10, 11, 11, 0]
    assert axis.bin_center(1) == pytest.approx(0.5)
    assert axis.bin_low_edge(3) == pytest.approx(2.0)


def test_axis_rejects_empty_range() -> None:
    with pytest.raises(ValueError):
        BinAxis(10, 1.0, 1.0)
    with pytest.raises(ValueError):
        BinAxis(0, 0.0, 1.0)


def test_hist1d_fill_counts_flows_and_skips_nan() -> None:
    hist = Hist1D("h", "h", BinAxis(4, 0.0, 4.0))
    hist.fill(np.array([0.5, 0.5, 3.5, -2.0, 9.0, np.nan]))

    assert hist.entries == 5
    assert hist.contents.tolist() == [2.0, 0.0, 0.0, 1.0]
    assert hist.bin_content(0) == 1.0
    assert hist.bin_content(5) == 1.0
    assert hist.total() == 5.0
    assert hist.total(include_flow=False) == 3.0


def test_hist1d_copy_is_independent() -> None:
    hist = Hist1D("h", "h", BinAxis(4, 0.0, 4.0))
    hist.fill(1.5)
    clone = hist.copy()
    clone.fill(1.5)
    assert hist.bin_content(2) == 1.0
    assert clone.bin_content(2) == 2.0


def test_from_contents_shape_check() -> None:
    axis = BinAxis(3, 0.0, 3.0)
    hist = Hist1D.from_contents("h", "h", axis, np.array([1.0, 2.0, 3.0]))
    assert hist.counts.tolist() == [0.0, 1.0, 2.0, 3.0, 0.0]
    with pytest.raises(ValueError):
        Hist1D.from_contents("h", "h", axis, np.zeros(4))


def test_hist2d_profile_x() -> None:
    hist = Hist2D("h2", "h2", BinAxis(3, 0.0, 3.0), BinAxis(10, 0.0, 10.0))
    hist.fill(np.array([0.5, 0.5, 0.5, 2.5]), np.array([2.5, 2.5, 4.5, 7.5]))

    profile = hist.profile_x()
    assert profile[0] == pytest.approx((2.5 * 2 + 4.5) / 3)
    assert profile[1] == 0.0
    assert profile[2] == pytest.approx(7.5)
    assert hist.total() == 4.0


def test_hist2d_shape_mismatch() -> None:
    hist = Hist2D("h2", "h2", BinAxis(3, 0.0, 3.0), BinAxis(3, 0.0, 3.0))
    with pytest.raises(ValueError):
        hist.fill(np.array([1.0, 2.0]), np.array([1.0]))
