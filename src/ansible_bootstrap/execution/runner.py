# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/execution/runner.py

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..comm.interface import RemoteCommand, Session
from ..errors import CommandFailureError, TransportError
from .relay import StreamRelay, open_pipe

log = logging.getLogger("ansible_bootstrap")

OutputSink = Callable[[str, str], None]  # (stream name, line)


class RemoteExecutor:
    """
    Runs one command on a session and streams its output line by line.

    run() returns only after the remote process has finished *and* both
    relays have seen end-of-stream, so no output is lost or emitted late.
    """

    def __init__(self, output: Optional[OutputSink] = None):
        self.output = output

    def _sink(self, stream: str) -> Callable[[str], None]:
        def emit(line: str) -> None:
            log.debug("[%s] %s", stream, line)
            if self.output is not None:
                self.output(stream, line)
        return emit

    def run(self, session: Session, command: str) -> int:
        out_r, out_w = open_pipe()
        err_r, err_w = open_pipe()
        relays = [
            StreamRelay(out_r, self._sink("stdout"), name="relay-stdout").start(),
            StreamRelay(err_r, self._sink("stderr"), name="relay-stderr").start(),
        ]

        cmd = RemoteCommand(command=command, stdout=out_w, stderr=err_w)
        log.debug("$ %s", command)
        try:
            try:
                proc = session.start(cmd)
            except OSError as e:
                raise TransportError(f"Error executing command {command!r}: {e}") from e

            try:
                cmd.exit_status = proc.wait()
            except OSError as e:
                raise TransportError(f"Error waiting for command {command!r}: {e}") from e
        finally:
            # closing the write ends lets the relays reach end-of-stream
            out_w.close()
            err_w.close()
            for relay in relays:
                relay.wait()

        log.debug("[exit %s] %s", cmd.exit_status, command)
        if cmd.exit_status != 0:
            raise CommandFailureError(command, cmd.exit_status)
        return cmd.exit_status
