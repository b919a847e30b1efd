"""Root logger setup shared by the CLI and interactive sessions."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _file_handlers(root: logging.Logger) -> set[str]:
    return {h.baseFilename for h in root.handlers if isinstance(h, logging.FileHandler)}


def setup_logging(log_path: str | Path | None = "logs/sspdiag.log", level: int = logging.INFO) -> logging.Logger:
    """Attach a console handler and, unless ``log_path`` is None, a file handler to the root logger.

    Calling it again with the same path does not duplicate handlers; the root
    level is updated and handlers pass everything the root lets through.
    """

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    if log_path is not None:
        log_file = Path(log_path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        if str(log_file.resolve()) not in _file_handlers(root):
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setFormatter(formatter)
            root.addHandler(fh)

    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler) for h in root.handlers
    )
    if not has_console:
        sh = logging.StreamHandler()
        sh.setFormatter(formatter)
        root.addHandler(sh)

    logger = logging.getLogger(__name__)
    logger.info("Logging initialized: %s", log_path if log_path is not None else "console only")
    return logger
