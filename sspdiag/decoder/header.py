"""SSP trigger header layout and field extraction.

The layout mirrors the digitizer's 12-word ``EventHeader`` (little-endian,
16-bit fields packed two per 32-bit word)::

    word 0    header magic 0xAAAAAAAA
    word 1    length (words, header included) | group1 (trigger type, flags)
    word 2    triggerID | group2 (bits 0-3 channel, 4-7 module)
    word 3-4  external timestamp, four 16-bit words, LSW first
    word 5    peakSumLow | group3 (bits 0-7 peak sum high, 8-15 peak time)
    word 6    preriseLow | group4 (bits 0-7 prerise high, 8-15 integral low)
    word 7    intSumHigh | baseline
    word 8-9  CFD interpolation points
    word 10-11 internal timestamp (word 0 reserved, 1-3 48-bit value)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sspdiag.config import HEADER_MAGIC, ChannelMapConfig

HEADER_DTYPE = np.dtype(
    [
        ("header", "<u4"),
        ("length", "<u2"),
        ("group1", "<u2"),
        ("trigger_id", "<u2"),
        ("group2", "<u2"),
        ("timestamp", "<u2", (4,)),
        ("peak_sum_low", "<u2"),
        ("group3", "<u2"),
        ("prerise_low", "<u2"),
        ("group4", "<u2"),
        ("int_sum_high", "<u2"),
        ("baseline", "<u2"),
        ("cfd_point", "<u2", (4,)),
        ("int_timestamp", "<u2", (4,)),
    ]
)
HEADER_BYTES = HEADER_DTYPE.itemsize
HEADER_WORDS = HEADER_BYTES // 4


class SSPDecodeError(ValueError):
    """Raw SSP data cannot be decoded."""


class HeaderDecodeError(SSPDecodeError):
    """A single trigger header is malformed or cannot be mapped to a channel."""


@dataclass(frozen=True)
class TriggerHeader:
    length: int
    module: int
    ssp_channel: int
    op_channel: int
    trigger_id: int
    trigger_type: int
    global_first_sample: int
    peak_sum: int
    peak_time: int
    baseline_sum: int
    integrated_sum: int
    baseline: int
    internal_timestamp: int

    @property
    def n_adc(self) -> int:
        return (self.length - HEADER_WORDS) * 2


def _signed24(value: int) -> int:
    value &= 0xFFFFFF
    return value - (1 << 24) if value & 0x800000 else value


def _join_words(words: np.ndarray) -> int:
    out = 0
    for k, word in enumerate(words):
        out += int(word) << (16 * k)
    return out


def op_channel(module: int, ssp_channel: int, channel_map: ChannelMapConfig) -> int:
    """Offline optical channel for a hardware (module, channel) pair."""

    if ssp_channel >= channel_map.channels_per_module:
        raise HeaderDecodeError(
            f"SSP channel {ssp_channel} outside 0..{channel_map.channels_per_module - 1}"
        )
    if channel_map.module_slots is None:
        slot = module
    else:
        try:
            slot = channel_map.module_slots[module]
        except KeyError:
            raise HeaderDecodeError(f"module {module} not in channel map") from None
    return slot * channel_map.channels_per_module + ssp_channel


def decode_header(raw: np.void, channel_map: ChannelMapConfig | None = None) -> TriggerHeader:
    """Extract physics fields from one raw header record."""

    cmap = channel_map or ChannelMapConfig()
    if int(raw["header"]) != HEADER_MAGIC:
        raise HeaderDecodeError(f"bad header magic 0x{int(raw['header']):08X}")

    group2 = int(raw["group2"])
    group3 = int(raw["group3"])
    group4 = int(raw["group4"])
    ssp_channel = group2 & 0x000F
    module = (group2 & 0x00F0) >> 4

    return TriggerHeader(
        length=int(raw["length"]),
        module=module,
        ssp_channel=ssp_channel,
        op_channel=op_channel(module, ssp_channel, cmap),
        trigger_id=int(raw["trigger_id"]),
        trigger_type=(int(raw["group1"]) & 0xFF00) >> 8,
        global_first_sample=_join_words(raw["timestamp"]),
        peak_sum=_signed24(((group3 & 0x00FF) << 16) + int(raw["peak_sum_low"])),
        peak_time=(group3 & 0xFF00) >> 8,
        baseline_sum=_signed24(((group4 & 0x00FF) << 16) + int(raw["prerise_low"])),
        integrated_sum=(int(raw["int_sum_high"]) << 8) + ((group4 & 0xFF00) >> 8),
        baseline=int(raw["baseline"]),
        internal_timestamp=_join_words(raw["int_timestamp"][1:]),
    )


def format_header(raw: np.void) -> str:
    """Multi-line dump of raw header words for diagnostics."""

    lines = ["Header:"]
    for name in HEADER_DTYPE.names or ():
        value = raw[name]
        if np.ndim(value):
            rendered = " ".join(f"{int(v)}" for v in value)
        else:
            rendered = f"{int(value)}"
        lines.append(f"  {name:<14}{rendered}")
    return "\n".join(lines)


def encode_header(
    *,
    length: int = HEADER_WORDS,
    module: int = 0,
    ssp_channel: int = 0,
    trigger_id: int = 0,
    trigger_type: int = 0,
    first_sample: int = 0,
    peak_sum: int = 0,
    peak_time: int = 0,
    baseline_sum: int = 0,
    integrated_sum: int = 0,
    baseline: int = 0,
    internal_timestamp: int = 0,
    magic: int = HEADER_MAGIC,
) -> bytes:
    """Pack one header in the hardware layout (inverse of decode_header)."""

    rec = np.zeros(1, dtype=HEADER_DTYPE)
    rec["header"] = magic
    rec["length"] = length
    rec["group1"] = (trigger_type & 0xFF) << 8
    rec["trigger_id"] = trigger_id & 0xFFFF
    rec["group2"] = ((module & 0x0F) << 4) | (ssp_channel & 0x0F)
    rec["timestamp"] = [(first_sample >> (16 * k)) & 0xFFFF for k in range(4)]
    peak = peak_sum & 0xFFFFFF
    prerise = baseline_sum & 0xFFFFFF
    rec["peak_sum_low"] = peak & 0xFFFF
    rec["group3"] = ((peak_time & 0xFF) << 8) | (peak >> 16)
    rec["prerise_low"] = prerise & 0xFFFF
    rec["group4"] = ((integrated_sum & 0xFF) << 8) | (prerise >> 16)
    rec["int_sum_high"] = (integrated_sum >> 8) & 0xFFFF
    rec["baseline"] = baseline & 0xFFFF
    rec["int_timestamp"] = [0] + [(internal_timestamp >> (16 * k)) & 0xFFFF for k in range(3)]
    return rec.tobytes()
