from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from sspdiag.decoder.header import encode_header
from sspdiag.io.reader import MissingColumnsError, iter_events, read_event_tables


def _write_tables(tmp_path: Path) -> tuple[Path, Path]:
    frag_path = tmp_path / "fragments.parquet"
    pd.DataFrame(
        [
            {"run": 2, "event": 1, "sequence": 1, "payload": encode_header(trigger_id=2), "n_triggers": 1, "valid": True, "frag_type": "PHOTON"},
            {"run": 2, "event": 1, "sequence": 0, "payload": encode_header(trigger_id=1), "n_triggers": None, "valid": True, "frag_type": "PHOTON"},
            {"run": 1, "event": 1, "sequence": 0, "payload": encode_header(trigger_id=3), "n_triggers": 1, "valid": False, "frag_type": "PHOTON"},
            {"run": 2, "event": 2, "sequence": 0, "payload": encode_header(trigger_id=4), "n_triggers": 1, "valid": True, "frag_type": "TRIGGER"},
        ]
    ).to_parquet(frag_path, index=False)

    wave_path = tmp_path / "waveforms.parquet"
    pd.DataFrame(
        [
            {"run": 2, "event": 1, "channel": 5, "samples": [2000, 2001, 2002], "timestamp": 1.5},
            {"run": 2, "event": 2, "channel": 5, "samples": [2000, 2000], "timestamp": 2.5},
        ]
    ).to_parquet(wave_path, index=False)
    return frag_path, wave_path


def test_events_grouped_by_run_in_encounter_order(tmp_path: Path) -> None:
    frag_path, wave_path = _write_tables(tmp_path)
    tables = read_event_tables(frag_path, wave_path)
    events = list(iter_events(tables))

    assert [(e.run, e.event) for e in events] == [(2, 1), (2, 2), (1, 1)]
    assert tables.runs == [2, 1]
    assert tables.n_events == 3

    first = events[0]
    assert first.fragments is not None and first.fragments.valid
    assert [f.sequence for f in first.fragments.ordered()] == [0, 1]
    assert {f.sequence: f.n_triggers for f in first.fragments.fragments} == {1: 1, 0: None}
    assert first.waveforms[0].channel == 5
    assert first.waveforms[0].samples.tolist() == [2000.0, 2001.0, 2002.0]
    assert first.waveforms[0].timestamp == 1.5


def test_other_fragment_types_are_dropped(tmp_path: Path) -> None:
    frag_path, wave_path = _write_tables(tmp_path)
    events = {(e.run, e.event): e for e in iter_events(read_event_tables(frag_path, wave_path))}

    assert events[(2, 2)].fragments is None
    assert len(events[(2, 2)].waveforms) == 1
    assert events[(1, 1)].fragments is not None
    assert not events[(1, 1)].fragments.valid


def test_waveforms_are_optional(tmp_path: Path) -> None:
    frag_path, _ = _write_tables(tmp_path)
    events = list(iter_events(read_event_tables(frag_path)))
    assert [(e.run, e.event) for e in events] == [(2, 1), (1, 1)]
    assert all(e.waveforms == () for e in events)


def test_missing_columns(tmp_path: Path) -> None:
    path = tmp_path / "bad.parquet"
    pd.DataFrame([{"run": 1, "event": 1}]).to_parquet(path, index=False)
    with pytest.raises(MissingColumnsError, match="payload"):
        read_event_tables(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_event_tables(tmp_path / "nope.parquet")
