# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/observers/jsonfile.py
from __future__ import annotations

import json
from pathlib import Path

from .events import BaseEvent


class JsonFileObserver:
    """
    Appends one JSON object per event to a file (JSON lines), tagged with
    the event type. Remote output is included unless with_output=False.
    """

    def __init__(self, path: str | Path, with_output: bool = True):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.with_output = with_output

    def notify(self, event: BaseEvent) -> None:
        etype = type(event).__name__
        if not self.with_output and etype == "RemoteOutput":
            return
        record = {"type": etype, **event.dict()}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
