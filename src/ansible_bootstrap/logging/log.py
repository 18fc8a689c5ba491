# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/ansible_bootstrap/logging/log.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

LOGGER_NAME = "ansible_bootstrap"
DEFAULT_LOG_DIR = Path.home() / ".ansible-bootstrap" / "logs"

_FORMAT = "%(asctime)s | %(levelname)-7s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _prune(base_dir: Path, name: str, keep: int) -> None:
    """Delete all but the newest `keep` run logs."""
    runs = sorted(base_dir.glob(f"{name}-*.log"), key=lambda p: p.stat().st_mtime, reverse=True)
    for old in runs[keep:]:
        old.unlink(missing_ok=True)


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "ansible-bootstrap",
    verbose: bool = False,
    keep: int = 50,
) -> tuple[logging.Logger, str, Path]:
    """
    One log file per run, holding the full trace including every line of
    remote output. The console only shows warnings unless verbose, since
    ConsoleObserver already prints progress there.

    paramiko's own warnings are routed into the same file.

    Returns (logger, run_id, log_path); run_id is shared with the event bus.
    """
    run_id = str(uuid.uuid4())

    base_dir = Path(base_dir) if base_dir is not None else DEFAULT_LOG_DIR
    base_dir.mkdir(parents=True, exist_ok=True)
    if keep > 0:
        _prune(base_dir, name, keep - 1)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{ts}-{run_id}.log"

    formatter = logging.Formatter(_FORMAT, datefmt=_DATEFMT)

    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.WARNING)
    ch.setFormatter(formatter)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for old in list(logger.handlers):
        old.close()
        logger.removeHandler(old)
    logger.propagate = False
    logger.addHandler(fh)
    logger.addHandler(ch)

    transport = logging.getLogger("paramiko")
    transport.setLevel(logging.WARNING)
    for old in [h for h in transport.handlers if isinstance(h, logging.FileHandler)]:
        old.close()
        transport.removeHandler(old)
    transport.addHandler(fh)

    logger.info("=== ansible-bootstrap run %s ===", run_id)
    logger.info("log_file=%s", log_path)

    return logger, run_id, log_path
