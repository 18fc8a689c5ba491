# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/comm/interface.py

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, IO, Optional, Protocol


@dataclass
class RemoteCommand:
    """
    A command to run on the target. ``stdout``/``stderr`` receive the raw
    bytes the remote process writes; ``exit_status`` is filled in by the
    executor once the process has finished.
    """
    command: str
    stdout: Optional[BinaryIO] = None
    stderr: Optional[BinaryIO] = None
    exit_status: Optional[int] = None


class RunningCommand(Protocol):
    def wait(self) -> int:
        """Block until the remote process ends; return its exit status."""
        ...


class Session(Protocol):
    """
    A live connection to the target host. Used sequentially by one workflow.
    Implementations raise TransportError (or OSError) on transport failures.
    """

    def upload_file(self, remote_path: str, stream: IO[bytes], mode: Optional[int] = None) -> None: ...

    def upload_dir(self, remote_root: str, local_dir: Path) -> None:
        """Mirror the *contents* of local_dir into remote_root."""
        ...

    def start(self, command: RemoteCommand) -> RunningCommand: ...

    def close(self) -> None: ...


class Communicator(Protocol):
    """
    Contract for reaching a target host. ``timeout`` is the overall time
    allowed for establishing the connection.
    """

    timeout: float

    def connect(self) -> Session: ...

    def describe(self) -> str:
        """Human-readable target, e.g. ``root@10.0.0.5:22``."""
        ...
