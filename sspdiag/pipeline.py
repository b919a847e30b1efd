"""Top-level diagnostics CLI."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from tqdm import tqdm

from sspdiag.analyzer import JobSummary, RunSummary, SSPDiagnosticAnalyzer
from sspdiag.config import AnalysisConfig, load_config
from sspdiag.decoder.fragment import InvalidFragmentError
from sspdiag.io.artifacts import write_job_artifacts, write_run_artifacts
from sspdiag.io.reader import iter_events, read_event_tables
from sspdiag.utils.logging_config import setup_logging

LOGGER = logging.getLogger(__name__)


def run_job(
    fragments_path: str | Path,
    waveforms_path: str | Path | None = None,
    config: AnalysisConfig | None = None,
    outdir: str | Path | None = None,
    progress: bool = True,
) -> tuple[list[RunSummary], JobSummary]:
    """Feed every event of the tables through one analyzer job.

    Runs are opened and closed whenever the run number changes. When
    ``outdir`` is given, per-run and job artifacts are written there.
    """

    cfg = config or AnalysisConfig()
    tables = read_event_tables(fragments_path, waveforms_path, frag_type=cfg.frag_type)
    analyzer = SSPDiagnosticAnalyzer(cfg)

    runs: list[RunSummary] = []
    current: int | None = None

    def close_run(run_number: int) -> None:
        summary = analyzer.on_run_end(run_number)
        runs.append(summary)
        if outdir is not None:
            write_run_artifacts(summary, outdir)

    for record in tqdm(iter_events(tables), total=tables.n_events, desc="events", unit="evt", disable=not progress):
        if record.run != current:
            if current is not None:
                close_run(current)
            analyzer.on_run_start(record.run)
            current = record.run
        analyzer.on_event(record.fragments, record.waveforms)

    if current is not None:
        close_run(current)

    job = analyzer.on_job_end()
    if outdir is not None:
        write_job_artifacts(job, outdir)
    return runs, job


def run_command(args: argparse.Namespace) -> int:
    setup_logging(args.log, level=logging.DEBUG if args.verbose else logging.INFO)
    LOGGER.info("run started")

    cfg = load_config(args.config)
    try:
        runs, job = run_job(
            fragments_path=args.fragments,
            waveforms_path=args.waveforms,
            config=cfg,
            outdir=args.outdir,
            progress=not args.no_progress,
        )
    except InvalidFragmentError as exc:
        LOGGER.error("job aborted: %s", exc)
        return 1

    LOGGER.info("run completed: %d runs, %d accepted triggers", len(runs), job.n_triggers)
    print("Diagnostics finished")
    print(f"runs: {', '.join(str(s.run_number) for s in runs) or 'none'}")
    print(f"outdir: {args.outdir}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m sspdiag.pipeline", description="SSP photodetector diagnostics")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("run", help="Decode event tables and write diagnostics artifacts")
    p.add_argument("--fragments", type=Path, required=True)
    p.add_argument("--waveforms", type=Path, default=None)
    p.add_argument("--config", type=Path, default=None)
    p.add_argument("--outdir", type=Path, default=Path("reports/sspdiag"))
    p.add_argument("--log", type=Path, default=Path("logs/sspdiag.log"))
    p.add_argument("--verbose", action="store_true")
    p.add_argument("--no-progress", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        return run_command(args)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
