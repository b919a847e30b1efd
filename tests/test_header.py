from __future__ import annotations

import numpy as np
import pytest

from sspdiag.config import ChannelMapConfig
from sspdiag.decoder.header import (
    HEADER_DTYPE,
    HEADER_WORDS,
    HeaderDecodeError,
    decode_header,
    encode_header,
    format_header,
)


def _raw(**kwargs: int) -> np.void:
    return np.frombuffer(encode_header(**kwargs), dtype=HEADER_DTYPE)[0]


def test_header_is_twelve_words() -> None:
    assert HEADER_DTYPE.itemsize == 48
    assert HEADER_WORDS == 12


def test_decode_header_fields() -> None:
    raw = _raw(
        length=20,
        module=2,
        ssp_channel=5,
        trigger_id=77,
        trigger_type=0x21,
        first_sample=(1 << 40) + 12345,
        peak_sum=1000,
        peak_time=9,
        baseline_sum=-200,
        integrated_sum=5000,
        baseline=1500,
        internal_timestamp=987654321,
    )
    header = decode_header(raw)

    assert header.length == 20
    assert header.n_adc == 16
    assert header.module == 2
    assert header.ssp_channel == 5
    assert header.op_channel == 2 * 12 + 5
    assert header.trigger_id == 77
    assert header.trigger_type == 0x21
    assert header.global_first_sample == (1 << 40) + 12345
    assert header.peak_sum == 1000
    assert header.peak_time == 9
    assert header.baseline_sum == -200
    assert header.integrated_sum == 5000
    assert header.baseline == 1500
    assert header.internal_timestamp == 987654321


def test_peak_sum_is_sign_extended_from_24_bits() -> None:
    header = decode_header(_raw(peak_sum=-1, baseline_sum=0x7FFFFF))
    assert header.peak_sum == -1
    assert header.baseline_sum == 0x7FFFFF


def test_bad_magic_raises() -> None:
    with pytest.raises(HeaderDecodeError, match="magic"):
        decode_header(_raw(magic=0x12345678))


def test_channel_outside_module_raises() -> None:
    with pytest.raises(HeaderDecodeError):
        decode_header(_raw(ssp_channel=13))


def test_module_slot_map() -> None:
    cmap = ChannelMapConfig(module_slots={9: 1})
    assert decode_header(_raw(module=9, ssp_channel=4), cmap).op_channel == 16
    with pytest.raises(HeaderDecodeError, match="not in channel map"):
        decode_header(_raw(module=3, ssp_channel=4), cmap)


def test_format_header_lists_fields() -> None:
    text = format_header(_raw(trigger_id=5))
    assert text.startswith("Header:")
    assert "trigger_id" in text
