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

"""Find units in error in a Juju model and offer ways to fix them.

The main pieces are:

- :class:`~jujuhealth.Monitor`, which runs the checks against a model and
  re-checks it after each fix.
- :func:`~jujuhealth.checks.check_units`, which reports each unit in error
  with its Retry, Replace and Show Status actions and an Open GUI link.
- :class:`~jujuhealth.RefreshScheduler`, which fetches a fresh status a short
  delay after each Retry or Replace.
- :class:`~jujuhealth.ConnectionProvider` and :class:`~jujuhealth.NotificationSink`,
  the two interfaces a caller supplies: how to reach the model, and where to
  report. :class:`jujuhealth.api.ClientProvider` connects to a real controller.
"""

from __future__ import annotations

__all__ = [  # noqa: RUF022 `__all__` is not sorted
    '__version__',
    'api',
    'testing',
    # From checks.py
    'ErroredUnit',
    'RemediationAction',
    'build_actions',
    'check_jujushell',
    'check_model',
    'check_units',
    'errored_units',
    'units_in_machine',
    # From config.py
    'MonitorConfig',
    'load_config',
    # From connection.py
    'Connection',
    'ConnectionProvider',
    'Watcher',
    'connected',
    'watch_once',
    # From errors.py
    'APIError',
    'ConnectionError',
    'Error',
    'PartialRemediationError',
    'ProtocolError',
    'RemediationError',
    'TimeoutError',
    'WatchError',
    # From log.py
    'setup_logging',
    # From monitor.py
    'Monitor',
    # From refresh.py
    'RefreshScheduler',
    'SchedulerState',
    # From sink.py
    'NotificationSink',
    # From status.py
    'ApplicationStatus',
    'ModelInfo',
    'ModelStatus',
    'StatusInfo',
    'StatusSnapshot',
    'UnitStatus',
    'UserTag',
]

from . import api, testing
from .checks import (
    ErroredUnit,
    RemediationAction,
    build_actions,
    check_jujushell,
    check_model,
    check_units,
    errored_units,
    units_in_machine,
)
from .config import MonitorConfig, load_config
from .connection import Connection, ConnectionProvider, Watcher, connected, watch_once
from .errors import (
    APIError,
    ConnectionError,
    Error,
    PartialRemediationError,
    ProtocolError,
    RemediationError,
    TimeoutError,
    WatchError,
)
from .log import setup_logging
from .monitor import Monitor
from .refresh import RefreshScheduler, SchedulerState
from .sink import NotificationSink
from .status import (
    ApplicationStatus,
    ModelInfo,
    ModelStatus,
    StatusInfo,
    StatusSnapshot,
    UnitStatus,
    UserTag,
)
from .version import version as _version

__version__: str = _version
