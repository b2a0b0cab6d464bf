# Copyright 2026 Canonical Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Access to the Juju control plane.

Everything the checks do against a model goes through a short-lived
:class:`Connection`, obtained from a :class:`ConnectionProvider` and released
as soon as the calls are done. Use :func:`connected` rather than calling
:meth:`ConnectionProvider.acquire` directly, so the release can't be missed.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Generator, Sequence
from typing import Any, Callable, Protocol

from .errors import TimeoutError, WatchError
from .status import ModelInfo, StatusSnapshot

logger = logging.getLogger(__name__)

Delta = list[Any]
"""A list of ``[kind, change, entity]`` entries sent by the model's all-watcher."""

WatchCallback = Callable[[Exception | None, Delta | None], None]
"""Called with ``(error, None)`` or ``(None, delta)`` for each watch event."""


class Watcher(Protocol):
    """Handle to a running delta watch."""

    def stop(self) -> None:
        """Stop the watch; no callbacks are made once this returns."""
        ...


class Connection(Protocol):
    """Calls available on an authenticated connection to a model."""

    def full_status(self) -> StatusSnapshot: ...  # noqa

    def resolve_unit_error(self, unit_name: str) -> None: ...  # noqa

    def destroy_machines(self, machine_ids: Sequence[str], force: bool = False) -> None: ...  # noqa

    def add_units(self, application: str, count: int) -> list[str]: ...  # noqa

    def watch(self, callback: WatchCallback) -> Watcher: ...  # noqa

    def model_info(self) -> ModelInfo: ...  # noqa

    def application_config(self, application: str) -> dict[str, Any]: ...  # noqa


class ConnectionProvider(Protocol):
    """Hands out connections to a model."""

    def acquire(self) -> tuple[Connection, Callable[[], None]]:
        """Open a connection; return it with the function that releases it."""
        ...


@contextlib.contextmanager
def connected(provider: ConnectionProvider) -> Generator[Connection]:
    """Acquire a connection for the duration of a ``with`` block.

    The connection is released exactly once when the block exits, whether
    it finishes normally or raises.
    """
    conn, release = provider.acquire()
    try:
        yield conn
    finally:
        release()


class _FirstEvent:
    """Records the first event delivered to a watch callback and drops the rest."""

    def __init__(self):
        self._lock = threading.Lock()
        self._done = threading.Event()
        self.error: Exception | None = None
        self.delta: Delta | None = None

    def __call__(self, error: Exception | None, delta: Delta | None):
        with self._lock:
            if self._done.is_set():
                return
            self.error = error
            self.delta = delta
            self._done.set()

    def wait(self, timeout: float | None) -> bool:
        return self._done.wait(timeout)


def watch_once(conn: Connection, timeout: float | None = None) -> Delta:
    """Start a delta watch, wait for its first event, and stop it.

    The watch is stopped however the wait ends: with a delta, with an error
    from the watch, or with a timeout.

    Returns:
        The first delta received.

    Raises:
        WatchError: if the watch reported an error before any delta.
        TimeoutError: if nothing arrived within ``timeout`` seconds.
    """
    first = _FirstEvent()
    watcher = conn.watch(first)
    try:
        if not first.wait(timeout):
            raise TimeoutError(f'no status change received within {timeout} seconds')
    finally:
        watcher.stop()
    if first.error is not None:
        raise WatchError(str(first.error)) from first.error
    logger.debug('received delta with %d entries', len(first.delta or []))
    return first.delta or []
