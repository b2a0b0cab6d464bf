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

"""A monitoring session: run the checks and keep re-checking after fixes."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from . import checks, metrics
from .config import MonitorConfig
from .connection import ConnectionProvider, connected
from .refresh import RefreshScheduler, TimerFactory
from .sink import NotificationSink
from .status import StatusSnapshot

logger = logging.getLogger(__name__)


class Monitor:
    """Checks one model and reports to one sink.

    :meth:`run` checks the model once. After that, every Retry or Replace
    action invoked from the sink schedules a refresh, and the units are
    checked again against the new status. Call :meth:`close` (or use the
    monitor as a context manager) to stop pending refreshes.
    """

    def __init__(
        self,
        provider: ConnectionProvider,
        sink: NotificationSink,
        config: MonitorConfig | None = None,
        *,
        fetch: Callable[[str, float], str] = metrics.fetch_metrics,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self.provider = provider
        self.sink = sink
        self.config = config or MonitorConfig()
        self._fetch = fetch
        self.scheduler = RefreshScheduler(
            provider,
            sink,
            self._check_units,
            delay=self.config.refresh_delay,
            timer_factory=timer_factory,
        )

    def __enter__(self) -> Monitor:
        return self

    def __exit__(self, *exc_info: object):
        self.close()

    @property
    def status(self) -> StatusSnapshot | None:
        """The most recent status snapshot checked."""
        return self.scheduler.status

    def run(self, status: StatusSnapshot | None = None) -> StatusSnapshot:
        """Run every check against ``status``, fetching it first if not given."""
        if status is None:
            with connected(self.provider) as conn:
                status = conn.full_status()
        self.scheduler.status = status
        logger.info('checking model %s', status.model.name)
        checks.check_model(self.provider, status, self.sink)
        self._check_units(status)
        checks.check_jujushell(self.provider, status, self.sink, self.config, self._fetch)
        return status

    def _check_units(self, status: StatusSnapshot):
        checks.check_units(self.provider, status, self.sink, self.scheduler, self.config)

    def close(self):
        """Stop monitoring; pending refreshes are cancelled."""
        self.scheduler.close()
