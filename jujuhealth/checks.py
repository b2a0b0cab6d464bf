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

"""Checks that find problems in a model and offer ways to fix them.

Each check takes a :class:`~jujuhealth.status.StatusSnapshot` and reports
to a :class:`~jujuhealth.sink.NotificationSink`. The unit check is the only
stateful one: its Retry and Replace actions change the model and then ask the
:class:`~jujuhealth.refresh.RefreshScheduler` for a fresh snapshot, which is
checked again in turn.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Callable

from . import metrics
from ._private import yaml
from .config import MonitorConfig
from .connection import ConnectionProvider, Delta, connected, watch_once
from .errors import Error, PartialRemediationError, RemediationError
from .sink import Invoke, NotificationSink, Write
from .status import StatusSnapshot, UserTag

if TYPE_CHECKING:
    from .refresh import RefreshScheduler

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, kw_only=True)
class ErroredUnit:
    """A unit whose workload is in error, as found in one snapshot."""

    app_name: str
    unit_name: str
    machine: str
    message: str
    model_name: str


@dataclasses.dataclass(frozen=True)
class RemediationAction:
    """An operator-triggered action bound to the unit it fixes."""

    label: str
    invoke: Invoke

    def __call__(self, write: Write) -> None:
        self.invoke(write)


def errored_units(status: StatusSnapshot) -> Iterator[ErroredUnit]:
    """Yield every unit in ``status`` whose workload status is "error".

    Units are yielded application by application, in snapshot order.
    """
    for app_name, app in status.applications.items():
        for unit_name, unit in app.units.items():
            if unit.workload_status.status != 'error':
                continue
            yield ErroredUnit(
                app_name=app_name,
                unit_name=unit_name,
                machine=unit.machine,
                message=unit.workload_status.info,
                model_name=status.model.name,
            )


def units_in_machine(status: StatusSnapshot, machine: str) -> list[str]:
    """Return the names of the units placed on the given machine."""
    return [
        unit_name
        for app in status.applications.values()
        for unit_name, unit in app.units.items()
        if unit.machine == machine
    ]


def check_model(provider: ConnectionProvider, status: StatusSnapshot, sink: NotificationSink):
    """Check that the model agent is up and running."""
    model = status.model
    if not model.available:
        sink.notify_error(f'model {model.name} - status is {model.status.status}')


def check_units(
    provider: ConnectionProvider,
    status: StatusSnapshot,
    sink: NotificationSink,
    scheduler: RefreshScheduler,
    config: MonitorConfig | None = None,
):
    """Check that there are no units in error, and offer to fix the ones that are.

    For each unit in error, an error is reported along with the actions from
    :func:`build_actions` and an "Open GUI" link to the model.
    """
    config = config or MonitorConfig()
    for unit in errored_units(status):
        sink.notify_error(
            f'model {unit.model_name} - unit {unit.unit_name} is in error state: {unit.message}'
        )
        for action in build_actions(provider, status, unit, sink, scheduler, config):
            sink.add_action(action.label, action)
        _add_gui_link(provider, unit, sink, config)


def build_actions(
    provider: ConnectionProvider,
    status: StatusSnapshot,
    unit: ErroredUnit,
    sink: NotificationSink,
    scheduler: RefreshScheduler,
    config: MonitorConfig,
) -> list[RemediationAction]:
    """Return the actions that apply to a unit in error, in presentation order.

    Retry and Show Status are always offered. Replace destroys the unit's
    machine, so it's only offered when the unit has a machine and is alone on it.
    """
    actions = [RemediationAction('Retry', _retry(provider, unit, sink, scheduler))]
    if unit.machine and len(units_in_machine(status, unit.machine)) <= 1:
        actions.append(RemediationAction('Replace', _replace(provider, unit, sink, scheduler)))
    actions.append(RemediationAction('Show Status', _show_status(provider, sink, config)))
    return actions


def _retry(
    provider: ConnectionProvider,
    unit: ErroredUnit,
    sink: NotificationSink,
    scheduler: RefreshScheduler,
) -> Invoke:
    def retry(write: Write):
        try:
            with connected(provider) as conn:
                sink.log(f'retrying unit {unit.unit_name}')
                conn.resolve_unit_error(unit.unit_name)
        except Error as e:
            _report(sink, RemediationError('Retry', unit.unit_name, e))
        finally:
            scheduler.schedule()

    return retry


def _replace(
    provider: ConnectionProvider,
    unit: ErroredUnit,
    sink: NotificationSink,
    scheduler: RefreshScheduler,
) -> Invoke:
    def replace(write: Write):
        # A failed add leaves the machine destroyed; there is no rollback.
        completed: list[str] = []
        try:
            with connected(provider) as conn:
                sink.log(f'replacing unit {unit.unit_name}')
                sink.log(f'destroying machine {unit.machine}')
                conn.destroy_machines([unit.machine], force=True)
                completed.append(f'destroyed machine {unit.machine}')
                sink.log(f'adding another unit to {unit.app_name}')
                conn.add_units(unit.app_name, 1)
        except Error as e:
            if completed:
                _report(sink, PartialRemediationError('Replace', unit.unit_name, e, completed))
            else:
                _report(sink, RemediationError('Replace', unit.unit_name, e))
        finally:
            scheduler.schedule()

    return replace


def _show_status(
    provider: ConnectionProvider,
    sink: NotificationSink,
    config: MonitorConfig,
) -> Invoke:
    def show_status(write: Write):
        try:
            with connected(provider) as conn:
                delta = watch_once(conn, timeout=config.watch_timeout)
        except Error as e:
            logger.debug('show status failed', exc_info=True)
            sink.notify_error(str(e))
            return
        write(format_delta(delta))

    return show_status


def _report(sink: NotificationSink, error: RemediationError):
    logger.warning('%s', error, exc_info=error.cause)
    sink.notify_error(str(error))


def format_delta(delta: Delta) -> str:
    """Render the entities changed in a watch delta as YAML, grouped by kind."""
    changed: dict[str, dict[str, Any]] = {}
    for kind, change, entity in delta:
        if change != 'change':
            continue
        key = entity.get('name') or entity.get('id') or entity.get('model-uuid', '')
        changed.setdefault(kind, {})[key] = entity
    if not changed:
        return 'no changes\n'
    return yaml.safe_dump(changed)


def _add_gui_link(
    provider: ConnectionProvider,
    unit: ErroredUnit,
    sink: NotificationSink,
    config: MonitorConfig,
):
    try:
        with connected(provider) as conn:
            info = conn.model_info()
        owner = UserTag.parse(info.owner_tag)
    except (Error, ValueError) as e:
        sink.notify_error(f'model {unit.model_name} - cannot link to GUI: {e}')
        return
    sink.add_link('Open GUI', config.gui_url.format(user=owner.username, model=unit.model_name))


def check_jujushell(
    provider: ConnectionProvider,
    status: StatusSnapshot,
    sink: NotificationSink,
    config: MonitorConfig | None = None,
    fetch: Callable[[str, float], str] = metrics.fetch_metrics,
):
    """Check that jujushell applications in the model don't report errors.

    The errors are read from each application's public metrics page; ``fetch``
    is called with the page URL and a timeout and returns the page text.
    """
    config = config or MonitorConfig()
    apps = [
        name for name, app in status.applications.items()
        if app.charm.startswith(config.jujushell_charm)
    ]
    if not apps:
        return
    with connected(provider) as conn:
        for app in apps:
            try:
                _check_jujushell_app(conn.application_config(app), app, status, sink, config, fetch)
            except Error as e:
                sink.notify_error(f'model {status.model.name} - app {app}: {e}')


def _check_jujushell_app(
    app_config: dict[str, Any],
    app: str,
    status: StatusSnapshot,
    sink: NotificationSink,
    config: MonitorConfig,
    fetch: Callable[[str, float], str],
):
    dns_name = (app_config.get('dns-name') or {}).get('value')
    if not dns_name:
        sink.notify_error(f'model {status.model.name} - app {app} has no dns-name configured')
        return
    target = f'https://{dns_name}/metrics'
    sink.log(f'making a GET request to {target}')
    errors = metrics.parse_error_counts(fetch(target, config.metrics_timeout))
    num_errors = sum(errors.values())
    if num_errors <= 0:
        return
    sink.notify_error(
        f'model {status.model.name} - app {app} exposed at {dns_name} has {num_errors} errors'
    )

    def show_errors(write: Write):
        write(metrics.format_error_table(errors))

    sink.add_action('Show Errors', show_errors)
