"""Analyzer runtime configuration and fixed binning constants."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass, replace
from pathlib import Path
from typing import Any

import yaml

# Fixed container binning (not exposed via config).
AMP_BINS = 125
AMP_RANGE = (-20.0, 230.0)
GLOBAL_AMP_BINS = 125
GLOBAL_AMP_RANGE = (-50.0, 200.0)
CHARGE_BINS = 300
CHARGE_RANGE = (0.0, 3.0e4)
WAVEFORM_ADC_BINS = 2000
WAVEFORM_ADC_RANGE = (1200.0, 5200.0)

HEADER_MAGIC = 0xAAAAAAAA
MAX_PEAKS = 100


class ConfigError(ValueError):
    """Configuration file or value is invalid."""


@dataclass(frozen=True)
class IntegrationWindows:
    """Hardware integration window lengths in ticks."""

    m1: int = 10
    i1: int = 500
    i2: int = 500


@dataclass(frozen=True)
class PeakSearchPolicy:
    """Peak search sensitivity and accepted spacing window for one distribution."""

    sigma: float
    low: float
    high: float
    threshold: float = 0.001
    max_peaks: int = MAX_PEAKS


@dataclass(frozen=True)
class ChannelMapConfig:
    """Mapping from (module id, SSP channel) to offline optical channel."""

    channels_per_module: int = 12
    module_slots: dict[int, int] | None = None


@dataclass(frozen=True)
class AnalysisConfig:
    frag_type: str = "PHOTON"
    raw_data_label: str = "daq"
    input_module: str = "ssptooffline"
    input_label: str = "offlinePhoton"
    sample_freq_mhz: float = 150.0
    clock_frequency_mhz: float = 150.0
    timestamp_sanity_limit: float = 1e16
    windows: IntegrationWindows = field(default_factory=IntegrationWindows)
    amplitude_policy: PeakSearchPolicy = field(default_factory=lambda: PeakSearchPolicy(sigma=1.5, low=10.0, high=20.0))
    charge_policy: PeakSearchPolicy = field(default_factory=lambda: PeakSearchPolicy(sigma=2.5, low=1000.0, high=1800.0))
    channel_map: ChannelMapConfig = field(default_factory=ChannelMapConfig)

    def describe(self) -> list[str]:
        """Human-readable parameter set, one line per entry."""

        return [
            "====================================",
            "Parameter Set",
            "====================================",
            f"frag_type:           {self.frag_type}",
            f"raw_data_label:      {self.raw_data_label}",
            f"input_module:        {self.input_module}",
            f"input_label:         {self.input_label}",
            f"sample_freq_mhz:     {self.sample_freq_mhz}",
            f"clock_frequency_mhz: {self.clock_frequency_mhz}",
            f"windows:             m1={self.windows.m1} i1={self.windows.i1} i2={self.windows.i2}",
            "====================================",
        ]


def _merge(base: Any, payload: Any, where: str) -> Any:
    if payload is None:
        return base
    if not isinstance(payload, dict):
        raise ConfigError(f"{where}: expected mapping, got {type(payload).__name__}")

    known = {f.name for f in fields(base)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigError(f"{where}: unknown keys {unknown}")

    updates: dict[str, Any] = {}
    for name, value in payload.items():
        current = getattr(base, name)
        updates[name] = _merge(current, value, f"{where}.{name}") if is_dataclass(current) else value
    return replace(base, **updates)


def validate_config(cfg: AnalysisConfig) -> AnalysisConfig:
    """Raise ConfigError on values the analyzer cannot work with."""

    if cfg.sample_freq_mhz <= 0 or cfg.clock_frequency_mhz <= 0:
        raise ConfigError("sample_freq_mhz and clock_frequency_mhz must be positive")
    w = cfg.windows
    if min(w.m1, w.i1, w.i2) <= 0:
        raise ConfigError(f"integration windows must be positive: {w}")
    for name in ("amplitude_policy", "charge_policy"):
        policy: PeakSearchPolicy = getattr(cfg, name)
        if policy.sigma <= 0:
            raise ConfigError(f"{name}.sigma must be positive")
        if policy.low > policy.high:
            raise ConfigError(f"{name}: low={policy.low} exceeds high={policy.high}")
        if not 0.0 <= policy.threshold < 1.0:
            raise ConfigError(f"{name}.threshold must be in [0, 1)")
        if policy.max_peaks < 1:
            raise ConfigError(f"{name}.max_peaks must be >= 1")
    if cfg.channel_map.channels_per_module < 1:
        raise ConfigError("channel_map.channels_per_module must be >= 1")
    return cfg


def load_config(path: str | Path | None = None) -> AnalysisConfig:
    """Load analyzer configuration from YAML; defaults when path is None."""

    if path is None:
        return validate_config(AnalysisConfig())

    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"config not found: {cfg_path}")

    try:
        payload = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse {cfg_path}: {exc}") from exc

    cfg = _merge(AnalysisConfig(), payload or {}, "config")
    slots = cfg.channel_map.module_slots
    if slots is not None:
        try:
            slots = {int(k): int(v) for k, v in slots.items()}
        except (AttributeError, TypeError, ValueError) as exc:
            raise ConfigError(f"channel_map.module_slots must map int -> int: {exc}") from exc
        cfg = replace(cfg, channel_map=replace(cfg.channel_map, module_slots=slots))
    return validate_config(cfg)
