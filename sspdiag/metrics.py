"""Pulse metrics derived from the hardware header sums."""

from __future__ import annotations

from dataclasses import dataclass

from sspdiag.config import IntegrationWindows
from sspdiag.decoder.header import TriggerHeader

TIMESTAMP_SANITY_LIMIT = 1e16


@dataclass(frozen=True)
class TriggerRecord:
    channel: int
    first_sample: int
    amplitude: float
    integrated_charge: float


def compute_metrics(
    peak_sum: float,
    baseline_sum: float,
    integrated_sum: float,
    windows: IntegrationWindows,
) -> tuple[float, float]:
    """Return (leading-edge amplitude, integrated charge) for one trigger.

    The baseline sum covers ``i2`` ticks and the peak sum ``m1`` ticks, so the
    amplitude is the peak mean over the baseline mean; the charge removes the
    baseline mean scaled to the ``i1`` integration window.
    """

    baseline_mean = baseline_sum / windows.i2
    amplitude = -baseline_mean + peak_sum / windows.m1
    integrated_charge = integrated_sum - baseline_mean * windows.i1
    return float(amplitude), float(integrated_charge)


def extract_record(
    header: TriggerHeader,
    windows: IntegrationWindows,
    timestamp_limit: float = TIMESTAMP_SANITY_LIMIT,
) -> TriggerRecord | None:
    """Build a TriggerRecord, or None when the first-sample timestamp is implausible."""

    if header.global_first_sample > timestamp_limit:
        return None

    amplitude, charge = compute_metrics(header.peak_sum, header.baseline_sum, header.integrated_sum, windows)
    return TriggerRecord(
        channel=header.op_channel,
        first_sample=header.global_first_sample,
        amplitude=amplitude,
        integrated_charge=charge,
    )
