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

"""Client for the Juju controller API (JSON RPC over a websocket).

Only the calls needed by the checks are implemented. A :class:`Client` is
one authenticated connection to one model; :class:`ClientProvider` opens a
new one for each :func:`~jujuhealth.connection.connected` block.
"""

from __future__ import annotations

import json
import logging
import ssl
import threading
from collections.abc import Sequence
from typing import Any, Callable, Protocol

import websocket  # type: ignore

from .connection import Delta, WatchCallback
from .errors import APIError, ConnectionError, Error, ProtocolError
from .status import ModelInfo, StatusSnapshot, UserTag

logger = logging.getLogger(__name__)

FACADE_VERSIONS: dict[str, int] = {
    'Admin': 3,
    'AllWatcher': 3,
    'Application': 19,
    'Client': 6,
    'MachineManager': 10,
}
"""Version of each API facade the client talks."""


class _WebSocket(Protocol):
    def connect(self, url: str, **options: Any): ...  # noqa
    def shutdown(self): ...                           # noqa
    def send(self, payload: str): ...                 # noqa
    def recv(self) -> str | bytes: ...                # noqa


def _unit_tag(unit_name: str) -> str:
    return 'unit-' + unit_name.replace('/', '-')


def _machine_tag(machine_id: str) -> str:
    # Container IDs such as 0/lxd/1 become machine-0-lxd-1.
    return 'machine-' + machine_id.replace('/', '-')


class Client:
    """A connection to the API of one model.

    All methods may raise :class:`~jujuhealth.errors.ConnectionError` when
    the controller can't be reached, and
    :class:`~jujuhealth.errors.APIError` when it rejects a request.
    """

    def __init__(
        self,
        endpoint: str,
        model_uuid: str,
        *,
        username: str,
        password: str,
        cacert: str | None = None,
        timeout: float = 30.0,
    ):
        self.endpoint = endpoint
        self.model_uuid = model_uuid
        self.username = username
        self.timeout = timeout
        self._password = password
        self._cacert = cacert
        self._ws: _WebSocket | None = None
        self._lock = threading.Lock()
        self._request_id = 0

    @property
    def url(self) -> str:
        return f'wss://{self.endpoint}/model/{self.model_uuid}/api'

    def _connect_websocket(self) -> _WebSocket:
        context = ssl.create_default_context(cadata=self._cacert)
        # Controller certificates are issued for "juju-apiserver", not the address.
        context.check_hostname = False
        ws: _WebSocket = websocket.WebSocket(sslopt={'context': context})  # type: ignore
        ws.connect(self.url, timeout=self.timeout)
        return ws

    def connect(self):
        """Open the websocket and log in."""
        try:
            self._ws = self._connect_websocket()
        except (websocket.WebSocketException, OSError) as e:  # type: ignore
            raise ConnectionError(f'cannot connect to {self.url}: {e}') from e
        tag = self.username if self.username.startswith(UserTag.PREFIX) else f'user-{self.username}'
        try:
            self._rpc('Admin', 'Login', {'auth-tag': tag, 'credentials': self._password})
        except Error:
            self.close()
            raise
        logger.debug('logged in to %s as %s', self.url, tag)

    def close(self):
        """Close the websocket; safe to call more than once."""
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            ws.shutdown()
        except (websocket.WebSocketException, OSError) as e:  # type: ignore
            logger.debug('error closing websocket: %s', e)

    def _rpc(
        self,
        facade: str,
        request: str,
        params: dict[str, Any] | None = None,
        *,
        id: str | None = None,
    ) -> dict[str, Any]:
        """Make one request and return the "response" part of the reply."""
        name = f'{facade}.{request}'
        with self._lock:
            ws = self._ws
            if ws is None:
                raise ConnectionError(f'{name}: not connected')
            self._request_id += 1
            message: dict[str, Any] = {
                'request-id': self._request_id,
                'type': facade,
                'version': FACADE_VERSIONS[facade],
                'request': request,
                'params': params or {},
            }
            if id is not None:
                message['id'] = id
            try:
                ws.send(json.dumps(message))
                raw = ws.recv()
            except (websocket.WebSocketException, OSError) as e:  # type: ignore
                raise ConnectionError(f'{name}: {e}') from e
            expected_id = self._request_id

        try:
            reply: dict[str, Any] = json.loads(raw)
        except ValueError as e:
            raise ProtocolError(f'{name}: invalid JSON in reply: {e}') from None
        if reply.get('request-id') != expected_id:
            raise ProtocolError(
                f'{name}: reply has request-id {reply.get("request-id")!r}, expected {expected_id}'
            )
        if reply.get('error'):
            raise APIError(name, reply.get('error-code', ''), reply['error'], reply)
        return reply.get('response') or {}

    @staticmethod
    def _check_results(name: str, response: dict[str, Any]):
        """Raise the first per-entity error of a bulk call's results."""
        for result in response.get('results') or []:
            error = result.get('error')
            if error:
                raise APIError(name, error.get('code', ''), error.get('message', ''), response)

    def full_status(self) -> StatusSnapshot:
        resp = self._rpc('Client', 'FullStatus', {'patterns': []})
        return StatusSnapshot.from_dict(resp)

    def resolve_unit_error(self, unit_name: str):
        params = {'tags': {'entities': [{'tag': _unit_tag(unit_name)}]}, 'retry': True}
        resp = self._rpc('Application', 'ResolveUnitErrors', params)
        self._check_results('Application.ResolveUnitErrors', resp)

    def destroy_machines(self, machine_ids: Sequence[str], force: bool = False):
        params = {
            'entities': [{'tag': _machine_tag(machine_id)} for machine_id in machine_ids],
            'force': force,
        }
        resp = self._rpc('MachineManager', 'DestroyMachineWithParams', params)
        self._check_results('MachineManager.DestroyMachineWithParams', resp)

    def add_units(self, application: str, count: int) -> list[str]:
        resp = self._rpc('Application', 'AddUnits', {'application': application, 'num-units': count})
        return list(resp.get('units') or [])

    def model_info(self) -> ModelInfo:
        resp = self._rpc('Client', 'ModelInfo')
        if 'owner-tag' not in resp:
            raise ProtocolError('Client.ModelInfo: reply has no owner-tag')
        return ModelInfo.from_dict(resp)

    def application_config(self, application: str) -> dict[str, Any]:
        resp = self._rpc('Application', 'Get', {'application': application})
        return dict(resp.get('config') or {})

    def watch(self, callback: WatchCallback) -> AllWatcher:
        """Watch the whole model, calling ``callback`` for every change.

        The watch uses its own connection, so this client stays usable while
        the watch is waiting for changes.
        """
        client = self._open_another()
        try:
            resp = client._rpc('Client', 'WatchAll')
            if 'watcher-id' not in resp:
                raise ProtocolError('Client.WatchAll: reply has no watcher-id')
        except Error:
            client.close()
            raise
        return AllWatcher(client, resp['watcher-id'], callback)

    def _open_another(self) -> Client:
        client = type(self)(
            self.endpoint,
            self.model_uuid,
            username=self.username,
            password=self._password,
            cacert=self._cacert,
            timeout=self.timeout,
        )
        client.connect()
        return client


class AllWatcher:
    """A running all-watcher; deltas are delivered from a background thread."""

    def __init__(self, client: Client, watcher_id: str, callback: WatchCallback):
        self._client = client
        self._watcher_id = watcher_id
        self._callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self):
        try:
            while not self._stopped.is_set():
                try:
                    resp = self._client._rpc('AllWatcher', 'Next', id=self._watcher_id)
                except Error as e:
                    if not self._stopped.is_set():
                        self._callback(e, None)
                    return
                deltas: Delta = resp.get('deltas') or []
                if not self._stopped.is_set():
                    self._callback(None, deltas)
        finally:
            self._client.close()

    def stop(self):
        """Stop watching and close the watch's connection."""
        self._stopped.set()
        # Unblocks a pending Next by closing the socket under it.
        self._client.close()


class ClientProvider:
    """Opens a new logged-in :class:`Client` for each acquire."""

    def __init__(
        self,
        endpoint: str,
        model_uuid: str,
        *,
        username: str,
        password: str,
        cacert: str | None = None,
        timeout: float = 30.0,
    ):
        self._args = (endpoint, model_uuid)
        self._kwargs: dict[str, Any] = dict(
            username=username, password=password, cacert=cacert, timeout=timeout
        )

    def acquire(self) -> tuple[Client, Callable[[], None]]:
        client = Client(*self._args, **self._kwargs)
        client.connect()
        return client, client.close
