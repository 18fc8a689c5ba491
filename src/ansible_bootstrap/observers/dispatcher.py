# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/observers/dispatcher.py
from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional

from .events import BaseEvent, new_ctx
from .interface import Observer

log = logging.getLogger("ansible_bootstrap")


class EventBus:
    """
    Fans events out to observers.

    Relay threads emit concurrently with the workflow thread, so delivery
    is serialized under a lock.
    """

    def __init__(
        self,
        observers: Optional[Iterable[Observer]] = None,
        *,
        host: Optional[str] = None,
        run_id: Optional[str] = None,
    ):
        self._observers: List[Observer] = list(observers or [])
        self._lock = threading.Lock()
        ctx = new_ctx(host=host, run_id=run_id)
        self.run_id: str = ctx["run_id"]
        self.host: Optional[str] = ctx["host"]

    def ctx(self) -> dict:
        return new_ctx(host=self.host, run_id=self.run_id)

    def emit(self, event: BaseEvent) -> None:
        with self._lock:
            for ob in self._observers:
                try:
                    ob.notify(event)
                except Exception:
                    # observers must not break a provision run
                    log.debug("observer %r failed on %s", ob, type(event).__name__, exc_info=True)
