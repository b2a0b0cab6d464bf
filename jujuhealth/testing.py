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

"""In-memory stand-ins for unit testing code built on juju-health.

:class:`FakeConnection` plays the part of a model, :class:`FakeProvider`
hands it out and keeps count of releases, :class:`RecordingSink` captures
everything the checks report, and :class:`ManualTimerFactory` lets a test
decide when scheduled refreshes run::

    conn = FakeConnection(StatusSnapshot.from_dict(status_dict))
    provider = FakeProvider(conn)
    sink = RecordingSink()
    timers = ManualTimerFactory()
    monitor = Monitor(provider, sink, timer_factory=timers)
    monitor.run()
    sink.invoke('Retry')
    timers.fire_all()
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from typing import Any, Callable

from .connection import Delta, WatchCallback
from .errors import Error
from .sink import Invoke
from .status import ModelInfo, StatusSnapshot


class FakeWatcher:
    """Watch handle returned by :meth:`FakeConnection.watch`."""

    def __init__(self, callback: WatchCallback):
        self.callback = callback
        self.stopped = 0

    def send(self, error: Exception | None = None, delta: Delta | None = None):
        """Deliver an event, unless the watch has been stopped."""
        if not self.stopped:
            self.callback(error, delta)

    def stop(self):
        self.stopped += 1


class FakeConnection:
    """A connection to an imaginary model.

    Every call is recorded in :attr:`calls` as a tuple of the method name and
    its arguments. To make a call fail, put the exception to raise in
    :attr:`failures` under the method name. Events in :attr:`watch_events`
    are delivered as soon as a watch starts.
    """

    def __init__(
        self,
        status: StatusSnapshot | None = None,
        *,
        owner_tag: str = 'user-admin',
        app_config: dict[str, dict[str, Any]] | None = None,
    ):
        self.status = status
        self.statuses: list[StatusSnapshot] = []
        """Snapshots returned by successive full_status calls before falling back to status."""

        self.owner_tag = owner_tag
        self.app_config = app_config or {}
        self.calls: list[tuple[Any, ...]] = []
        self.failures: dict[str, Error] = {}
        self.watch_events: list[tuple[Exception | None, Delta | None]] = []
        self.watchers: list[FakeWatcher] = []

    def _call(self, name: str, *args: Any):
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        """Return the recorded calls to the named method."""
        return [call for call in self.calls if call[0] == name]

    def full_status(self) -> StatusSnapshot:
        self._call('full_status')
        if self.statuses:
            return self.statuses.pop(0)
        if self.status is None:
            raise RuntimeError('FakeConnection has no status set')
        return self.status

    def resolve_unit_error(self, unit_name: str):
        self._call('resolve_unit_error', unit_name)

    def destroy_machines(self, machine_ids: Sequence[str], force: bool = False):
        self._call('destroy_machines', list(machine_ids), force)

    def add_units(self, application: str, count: int) -> list[str]:
        self._call('add_units', application, count)
        return [f'{application}/new{i}' for i in range(count)]

    def watch(self, callback: WatchCallback) -> FakeWatcher:
        self._call('watch')
        watcher = FakeWatcher(callback)
        self.watchers.append(watcher)
        for error, delta in self.watch_events:
            watcher.send(error, delta)
        return watcher

    def model_info(self) -> ModelInfo:
        self._call('model_info')
        name = self.status.model.name if self.status is not None else ''
        return ModelInfo(name=name, uuid='', owner_tag=self.owner_tag)

    def application_config(self, application: str) -> dict[str, Any]:
        self._call('application_config', application)
        return self.app_config.get(application, {})


class FakeProvider:
    """Hands out the same :class:`FakeConnection` and counts acquires and releases."""

    def __init__(self, conn: FakeConnection):
        self.conn = conn
        self.acquired = 0
        self.released = 0
        self.failure: Error | None = None
        """If set, acquire raises this instead of returning a connection."""

    @property
    def outstanding(self) -> int:
        """Connections acquired and not yet released."""
        return self.acquired - self.released

    def acquire(self) -> tuple[FakeConnection, Callable[[], None]]:
        if self.failure is not None:
            raise self.failure
        self.acquired += 1
        released = False

        def release():
            nonlocal released
            if released:
                raise RuntimeError('connection released twice')
            released = True
            self.released += 1

        return self.conn, release


@dataclasses.dataclass
class RecordingSink:
    """A notification sink that keeps everything it's sent."""

    errors: list[str] = dataclasses.field(default_factory=list)
    logs: list[str] = dataclasses.field(default_factory=list)
    actions: list[tuple[str, Invoke]] = dataclasses.field(default_factory=list)
    links: list[tuple[str, str]] = dataclasses.field(default_factory=list)
    refreshes: int = 0

    def notify_error(self, message: str):
        self.errors.append(message)

    def log(self, message: str):
        self.logs.append(message)

    def add_action(self, label: str, invoke: Invoke):
        self.actions.append((label, invoke))

    def add_link(self, label: str, url: str):
        self.links.append((label, url))

    def refresh(self):
        self.refreshes += 1

    @property
    def action_labels(self) -> list[str]:
        return [label for label, _ in self.actions]

    def invoke(self, label: str, index: int = 0) -> str:
        """Invoke the ``index``-th action with the given label; return what it wrote."""
        matching = [invoke for action_label, invoke in self.actions if action_label == label]
        output: list[str] = []
        matching[index](output.append)
        return ''.join(output)


class ManualTimer:
    """A timer that only fires when told to."""

    def __init__(self, interval: float, function: Callable[[], None]):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function()


class ManualTimerFactory:
    """Creates :class:`ManualTimer` objects and keeps track of them."""

    def __init__(self):
        self.timers: list[ManualTimer] = []

    def __call__(self, interval: float, function: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def fire_all(self):
        """Fire the timers pending now; timers they start stay pending."""
        for timer in self.pending:
            timer.fire()
