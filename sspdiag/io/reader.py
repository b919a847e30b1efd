"""Event tables on disk (parquet) to analyzer inputs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

import numpy as np
import pandas as pd
import pyarrow.parquet as pq

from sspdiag.decoder.fragment import FragmentSet, RawFragment
from sspdiag.waveform import Waveform

LOGGER = logging.getLogger(__name__)

FRAGMENT_COLUMNS = ("run", "event", "sequence", "payload")
WAVEFORM_COLUMNS = ("run", "event", "channel", "samples")


class MissingColumnsError(ValueError):
    """Event table lacks columns required to build analyzer inputs."""


@dataclass(frozen=True)
class EventRecord:
    """Everything the analyzer sees for one event.

    ``fragments`` is None when the event carries no SSP fragment rows at all.
    """

    run: int
    event: int
    fragments: FragmentSet | None
    waveforms: tuple[Waveform, ...] = ()


@dataclass
class EventTables:
    fragments: pd.DataFrame
    waveforms: pd.DataFrame | None = None
    frag_type: str = "PHOTON"
    _keys: list[tuple[int, int]] = field(default_factory=list, repr=False)

    @property
    def n_events(self) -> int:
        return len(self._keys)

    @property
    def runs(self) -> list[int]:
        return list(dict.fromkeys(run for run, _ in self._keys))


def _read_table(path: str | Path, required: tuple[str, ...], kind: str) -> pd.DataFrame:
    table_path = Path(path)
    if not table_path.exists():
        raise FileNotFoundError(f"{kind} table not found: {table_path}")

    df = pq.read_table(table_path).to_pandas()
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise MissingColumnsError(f"{kind} table {table_path} is missing columns: {missing}")
    LOGGER.info("loaded %s table %s: %d rows", kind, table_path, len(df))
    return df


def _event_keys(*frames: pd.DataFrame | None) -> list[tuple[int, int]]:
    """(run, event) pairs in first-seen order, grouped so each run is contiguous."""

    seen: dict[tuple[int, int], None] = {}
    for df in frames:
        if df is None or df.empty:
            continue
        for run, event in zip(df["run"].to_numpy(), df["event"].to_numpy()):
            seen.setdefault((int(run), int(event)), None)

    run_order: dict[int, int] = {}
    for run, _ in seen:
        run_order.setdefault(run, len(run_order))
    return sorted(seen, key=lambda key: run_order[key[0]])


def read_event_tables(
    fragments_path: str | Path,
    waveforms_path: str | Path | None = None,
    frag_type: str = "PHOTON",
) -> EventTables:
    """Load the fragment table and optional waveform table.

    When the fragment table has a ``frag_type`` column only rows of
    ``frag_type`` are kept.
    """

    fragments = _read_table(fragments_path, FRAGMENT_COLUMNS, "fragments")
    if "frag_type" in fragments.columns:
        kept = fragments["frag_type"].astype(str) == frag_type
        if not kept.all():
            LOGGER.info("dropping %d fragment rows not of type %s", int((~kept).sum()), frag_type)
        fragments = fragments[kept]
    fragments = fragments.reset_index(drop=True)

    waveforms = None
    if waveforms_path is not None:
        waveforms = _read_table(waveforms_path, WAVEFORM_COLUMNS, "waveforms")

    return EventTables(
        fragments=fragments,
        waveforms=waveforms,
        frag_type=frag_type,
        _keys=_event_keys(fragments, waveforms),
    )


def _optional_int(value: Any) -> int | None:
    if value is None or pd.isna(value):
        return None
    return int(value)


def _fragment_set(rows: pd.DataFrame) -> FragmentSet:
    has_count = "n_triggers" in rows.columns
    fragments = tuple(
        RawFragment(
            payload=bytes(row["payload"]),
            sequence=int(row["sequence"]),
            n_triggers=_optional_int(row["n_triggers"]) if has_count else None,
        )
        for _, row in rows.iterrows()
    )
    valid = bool(rows["valid"].astype(bool).all()) if "valid" in rows.columns else True
    return FragmentSet(fragments=fragments, valid=valid)


def _waveforms(rows: pd.DataFrame) -> tuple[Waveform, ...]:
    has_ts = "timestamp" in rows.columns
    return tuple(
        Waveform(
            channel=int(row["channel"]),
            samples=np.asarray(row["samples"], dtype=np.float64),
            timestamp=float(row["timestamp"]) if has_ts else 0.0,
        )
        for _, row in rows.iterrows()
    )


def iter_events(tables: EventTables) -> Iterator[EventRecord]:
    """Yield one EventRecord per (run, event), runs contiguous in encounter order."""

    frag_groups = dict(tuple(tables.fragments.groupby(["run", "event"], sort=False)))
    wave_groups: dict[Any, pd.DataFrame] = {}
    if tables.waveforms is not None:
        wave_groups = dict(tuple(tables.waveforms.groupby(["run", "event"], sort=False)))

    for run, event in tables._keys:
        frag_rows = frag_groups.get((run, event))
        wave_rows = wave_groups.get((run, event))
        yield EventRecord(
            run=run,
            event=event,
            fragments=None if frag_rows is None else _fragment_set(frag_rows),
            waveforms=() if wave_rows is None else _waveforms(wave_rows),
        )
