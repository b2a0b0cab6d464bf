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

"""Re-check the model shortly after it has been changed."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, Protocol

from .connection import ConnectionProvider, connected
from .errors import Error
from .sink import NotificationSink
from .status import StatusSnapshot

logger = logging.getLogger(__name__)


class _Timer(Protocol):
    def start(self) -> None: ...  # noqa
    def cancel(self) -> None: ...  # noqa


TimerFactory = Callable[[float, Callable[[], None]], _Timer]


class SchedulerState(enum.Enum):
    """Whether any refresh is waiting to run."""

    IDLE = 'idle'
    SCHEDULED = 'scheduled'


class RefreshScheduler:
    """Fetches a new status snapshot a fixed delay after each remediation.

    There's no periodic polling: a refresh only happens when :meth:`schedule`
    is called, and every call schedules its own refresh (two remediations in
    quick succession give two refreshes). When a refresh runs, the new
    snapshot is stored in :attr:`status`, the sink is told about it, and
    ``on_status`` is called with it so the checks can run again.

    The scheduler runs until :meth:`close` is called.
    """

    def __init__(
        self,
        provider: ConnectionProvider,
        sink: NotificationSink,
        on_status: Callable[[StatusSnapshot], None] | None = None,
        *,
        delay: float = 3.0,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self.delay = delay
        self.status: StatusSnapshot | None = None
        """The most recent snapshot; None until the first one is set or fetched."""

        self._provider = provider
        self._sink = sink
        self._on_status = on_status
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timers: set[_Timer] = set()
        self._closed = False

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return SchedulerState.SCHEDULED if self._timers else SchedulerState.IDLE

    def schedule(self):
        """Arrange for a refresh to run after :attr:`delay` seconds."""
        with self._lock:
            if self._closed:
                logger.debug('scheduler closed, not scheduling refresh')
                return
            timer: _Timer | None = None

            def fire():
                try:
                    self.refresh()
                finally:
                    with self._lock:
                        self._timers.discard(timer)

            timer = self._timer_factory(self.delay, fire)
            if isinstance(timer, threading.Timer):
                timer.daemon = True
            self._timers.add(timer)
        logger.debug('refresh scheduled in %s seconds', self.delay)
        timer.start()

    def refresh(self) -> StatusSnapshot | None:
        """Fetch a new snapshot now and hand it on.

        Failures to fetch are reported to the sink; the previous snapshot is
        kept and None is returned.
        """
        try:
            with connected(self._provider) as conn:
                status = conn.full_status()
        except Error as e:
            logger.warning('cannot refresh model status: %s', e)
            self._sink.notify_error(f'cannot refresh model status: {e}')
            return None
        self.status = status
        self._sink.refresh()
        if self._on_status is not None:
            self._on_status(status)
        return status

    def close(self):
        """Cancel pending refreshes and stop accepting new ones."""
        with self._lock:
            self._closed = True
            timers, self._timers = self._timers, set()
        for timer in timers:
            timer.cancel()
        logger.debug('scheduler closed, %d pending refreshes cancelled', len(timers))
