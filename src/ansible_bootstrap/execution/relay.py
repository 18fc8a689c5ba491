# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/execution/relay.py

from __future__ import annotations

import logging
import os
import threading
from typing import BinaryIO, Callable, Tuple

log = logging.getLogger("ansible_bootstrap")

LineSink = Callable[[str], None]


def open_pipe() -> Tuple[BinaryIO, BinaryIO]:
    """Return (reader, writer) ends of an OS pipe as binary file objects."""
    r, w = os.pipe()
    return os.fdopen(r, "rb"), os.fdopen(w, "wb", buffering=0)


def _strip_eol(raw: bytes) -> str:
    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
    return raw.decode("utf-8", errors="replace")


class StreamRelay:
    """
    Forwards a byte stream to a sink one line at a time, on its own thread.

    A trailing line without a terminator is still delivered. The relay is
    done once the writer side of the stream has been closed and every
    line has been handed to the sink.
    """

    def __init__(self, reader: BinaryIO, sink: LineSink, name: str = "relay"):
        self._reader = reader
        self._sink = sink
        self._done = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> "StreamRelay":
        self._thread.start()
        return self

    def _run(self) -> None:
        sink_failed = False
        try:
            for raw in self._reader:
                if sink_failed:
                    continue  # keep draining so the writer never blocks
                try:
                    self._sink(_strip_eol(raw))
                except Exception:
                    sink_failed = True
                    log.exception("[%s] output sink failed; discarding further lines", self._thread.name)
        finally:
            self._reader.close()
            self._done.set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)
