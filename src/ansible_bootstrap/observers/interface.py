# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/observers/interface.py
from __future__ import annotations

from typing import Protocol, runtime_checkable

from .events import BaseEvent


@runtime_checkable
class Observer(Protocol):
    """
    Receives workflow events. notify() may be invoked from relay threads;
    the EventBus never calls two observers at once.
    """

    def notify(self, event: BaseEvent) -> None: ...
