# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/observers/console.py
from __future__ import annotations

import sys
from typing import TextIO

from .events import BaseEvent, RemoteOutput


class ConsoleObserver:
    """Prints one human-readable line per event."""

    def __init__(self, stream: TextIO | None = None, show_stream: bool = False):
        self.stream = stream or sys.stdout
        self.show_stream = show_stream

    def notify(self, event: BaseEvent) -> None:
        line = event.message()
        if self.show_stream and isinstance(event, RemoteOutput):
            line = f"({event.stream}) {line}"
        print(line, file=self.stream, flush=True)
