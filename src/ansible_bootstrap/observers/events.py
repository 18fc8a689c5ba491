# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single provision invocation
    host: Optional[str]  # target host, if known

    def dict(self) -> Dict[str, Any]:
        return asdict(self)

    def message(self) -> str:
        return self.__class__.__name__


def now_ts() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def new_ctx(host: Optional[str] = None, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": now_ts(),
        "run_id": run_id or str(uuid.uuid4()),
        "host": host,
    }


# ---------------------------------------------------------------------
# Workflow lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PhaseEntered(BaseEvent):
    phase: str

    def message(self) -> str:
        return f"[{self.phase}]"

@dataclass(frozen=True)
class Progress(BaseEvent):
    text: str

    def message(self) -> str:
        return self.text

@dataclass(frozen=True)
class ProvisionSucceeded(BaseEvent):
    def message(self) -> str:
        return "Provisioning complete."

@dataclass(frozen=True)
class ProvisionFailed(BaseEvent):
    phase: str
    error: str

    def message(self) -> str:
        return self.error


# ---------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ConnectRetry(BaseEvent):
    attempt: int
    error: str

    def message(self) -> str:
        return f"Connection attempt {self.attempt} failed: {self.error}"


# ---------------------------------------------------------------------
# Remote command output
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RemoteOutput(BaseEvent):
    stream: str       # "stdout" | "stderr"
    line: str

    def message(self) -> str:
        return self.line


# ---------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class CleanupFailed(BaseEvent):
    error: str

    def message(self) -> str:
        return f"Cleanup failed: {self.error}"
