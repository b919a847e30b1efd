from __future__ import annotations

import pytest

from sspdiag.rate import RateTracker


def test_no_triggers_reports_no_data() -> None:
    report = RateTracker().report(150.0)
    assert not report.available
    assert report.channels == {}
    assert report.rate_khz(3) is None
    assert "no data" in report.lines()[1]


def test_single_timestamp_has_no_rate() -> None:
    tracker = RateTracker()
    tracker.observe(3, 1000)
    tracker.observe(3, 1000)
    report = tracker.report(150.0)

    assert report.elapsed_ticks == 0
    assert report.rate_khz(3) is None
    assert report.channels[3].count == 2
    assert any("no data" in line for line in report.lines())


def test_rates_in_khz() -> None:
    tracker = RateTracker()
    tracker.observe(3, 1000)
    tracker.observe(3, 1000 + 150_000)
    tracker.observe(5, 50_000)
    report = tracker.report(150.0)

    assert report.first_time == 1000
    assert report.last_time == 151_000
    assert report.elapsed_us == pytest.approx(1000.0)
    assert report.elapsed_minutes == pytest.approx(1000.0 / 60.0e6)
    assert report.rate_khz(3) == pytest.approx(2.0)
    assert report.rate_khz(5) == pytest.approx(1.0)
    assert tracker.n_triggers == 3
    assert report.lines()[0] == "!! Diagnostic Rate Report."


def test_clock_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RateTracker().report(0.0)
