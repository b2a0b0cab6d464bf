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

from __future__ import annotations

from typing import Any, Callable

import pytest

from jujuhealth import MonitorConfig, RefreshScheduler, StatusSnapshot
from jujuhealth.testing import FakeConnection, FakeProvider, ManualTimerFactory, RecordingSink

StatusMaker = Callable[..., StatusSnapshot]


def _unit(status: str, machine: str, info: str = '') -> dict[str, Any]:
    return {'workload-status': {'status': status, 'info': info}, 'machine': machine}


@pytest.fixture
def make_status() -> StatusMaker:
    """Return a function building a snapshot from (app, unit, status, machine) tuples."""

    def make(*units: tuple[str, str, str, str], model_status: str = 'available', charm='cs:db'):
        apps: dict[str, Any] = {}
        for app, unit, status, machine in units:
            app_dict = apps.setdefault(app, {'charm': charm, 'units': {}})
            info = 'hook failed: "install"' if status == 'error' else ''
            app_dict['units'][unit] = _unit(status, machine, info)
        return StatusSnapshot.from_dict({
            'model': {'name': 'prod', 'model-status': {'status': model_status}},
            'applications': apps,
        })

    return make


@pytest.fixture
def single_error_status(make_status: StatusMaker) -> StatusSnapshot:
    return make_status(('db', 'db/0', 'error', '0'))


@pytest.fixture
def conn(single_error_status: StatusSnapshot) -> FakeConnection:
    return FakeConnection(single_error_status, owner_tag='user-bob@external')


@pytest.fixture
def provider(conn: FakeConnection) -> FakeProvider:
    return FakeProvider(conn)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def config() -> MonitorConfig:
    return MonitorConfig(watch_timeout=1.0)


@pytest.fixture
def scheduler(
    provider: FakeProvider, sink: RecordingSink, timers: ManualTimerFactory
) -> RefreshScheduler:
    return RefreshScheduler(provider, sink, delay=3.0, timer_factory=timers)
