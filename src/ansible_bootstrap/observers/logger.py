# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations
import logging
from .events import BaseEvent, ConnectRetry, CleanupFailed, ProvisionFailed, RemoteOutput


class LoggerObserver:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        etype = event.__class__.__name__
        if isinstance(event, RemoteOutput):
            # remote output goes to the file trace only
            self.logger.debug(f"[{event.stream}] {event.line}")
        elif isinstance(event, (ConnectRetry, CleanupFailed)):
            self.logger.warning(f"[EVENT] {etype}: {event.message()}")
        elif isinstance(event, ProvisionFailed):
            self.logger.error(f"[EVENT] {etype}: phase={event.phase} error={event.error}")
        else:
            self.logger.info(f"[EVENT] {etype}: {event.message()}")
