from __future__ import annotations

import numpy as np
import pytest

from sspdiag.accumulator import ChannelAccumulator
from sspdiag.waveform import Waveform, average_waveform_spectrum


def test_constant_waveform_has_only_dc_component() -> None:
    acc = ChannelAccumulator(sample_freq_mhz=150.0)
    acc.observe_waveform(Waveform(channel=4, samples=np.full(8, 2000.5)))

    spectrum = average_waveform_spectrum(4, acc.get(4).average_waveform)
    assert spectrum is not None
    assert spectrum.magnitude.name == "waveformFFT_channel_004"
    assert spectrum.magnitude.axis.nbins == 4
    assert spectrum.magnitude.axis.high == pytest.approx(75.0)

    level = spectrum.profile[0]
    assert np.allclose(spectrum.profile, level)
    assert spectrum.magnitude.contents[0] == pytest.approx(8 * level)
    assert np.allclose(spectrum.magnitude.contents[1:], 0.0, atol=1e-6)


def test_single_sample_waveform_has_no_spectrum() -> None:
    acc = ChannelAccumulator(sample_freq_mhz=150.0)
    acc.observe_waveform(Waveform(channel=4, samples=np.array([2000.0])))
    assert average_waveform_spectrum(4, acc.get(4).average_waveform) is None


def test_times_us() -> None:
    wf = Waveform(channel=0, samples=np.zeros(3))
    assert wf.times_us(150.0).tolist() == pytest.approx([0.5 / 150.0, 1.5 / 150.0, 2.5 / 150.0])
    assert len(wf) == 3
