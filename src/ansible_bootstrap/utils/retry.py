# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import logging
import time
from typing import Callable, Optional, TypeVar

from ..errors import RemoteConnectionError

log = logging.getLogger("ansible_bootstrap")

T = TypeVar("T")

DEFAULT_RETRY_INTERVAL = 3.0


def establish(
    connect_fn: Callable[[], T],
    *,
    timeout: float,
    interval: float = DEFAULT_RETRY_INTERVAL,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call connect_fn until it succeeds or timeout seconds have elapsed.

    Attempts are unbounded in number; between attempts we wait `interval`
    seconds unless the deadline comes first, in which case no further
    attempt is made and RemoteConnectionError carrying the last
    underlying error is raised.

    on_retry: callback(attempt, exception)
    """
    deadline = clock() + timeout
    attempt = 0
    while True:
        attempt += 1
        try:
            return connect_fn()
        except retry_on as exc:
            last_exc = exc

        log.warning("Retryable error (attempt %d): %s", attempt, last_exc)
        if on_retry:
            on_retry(attempt, last_exc)

        remaining = deadline - clock()
        if remaining <= interval:
            if remaining > 0:
                sleep(remaining)
            raise RemoteConnectionError(last_exc) from last_exc
        sleep(interval)
