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

import json
import threading
from typing import Any

import pytest
import websocket  # type: ignore

from jujuhealth import APIError, ConnectionError, ProtocolError, StatusSnapshot, WatchError
from jujuhealth.api import Client, ClientProvider
from jujuhealth.connection import watch_once


class MockWebSocket:
    """Mock websocket that records sent requests and replies from a queue.

    A queued dict is sent as the "response" of the request it answers, a
    queued str is sent as is, and a queued exception is raised from recv.
    """

    def __init__(self, replies: list[Any]):
        self.sent: list[dict[str, Any]] = []
        self.replies = replies
        self.closed = False
        self._cond = threading.Condition()

    def send(self, payload: str):
        with self._cond:
            self.sent.append(json.loads(payload))

    def recv(self) -> str:
        with self._cond:
            # Block like a real socket when nothing is queued, until closed.
            self._cond.wait_for(lambda: self.replies or self.closed, timeout=5)
            if self.closed:
                raise websocket.WebSocketConnectionClosedException('closed')
            reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return reply
        return json.dumps({'request-id': self.sent[-1]['request-id'], **reply})

    def shutdown(self):
        with self._cond:
            self.closed = True
            self._cond.notify_all()

    def requests(self) -> list[tuple[str, str, dict[str, Any]]]:
        return [(m['type'], m['request'], m['params']) for m in self.sent]


LOGIN_OK = {'response': {'model-tag': 'model-abc'}}


class MockClient(Client):
    """Client whose websockets are taken from a list instead of the network."""

    def __init__(self, sockets: list[MockWebSocket], **kwargs: Any):
        kwargs.setdefault('username', 'admin')
        kwargs.setdefault('password', 'secret')
        super().__init__('10.0.0.1:17070', 'abc', **kwargs)
        self.sockets = sockets

    def _connect_websocket(self):
        return self.sockets.pop(0)

    def _open_another(self) -> Client:
        client = MockClient(self.sockets)
        client.connect()
        return client


@pytest.fixture
def ws() -> MockWebSocket:
    return MockWebSocket([LOGIN_OK])


@pytest.fixture
def client(ws: MockWebSocket) -> MockClient:
    client = MockClient([ws])
    client.connect()
    return client


class TestConnect:
    def test_url(self):
        client = Client('10.0.0.1:17070', 'abc-123', username='admin', password='x')
        assert client.url == 'wss://10.0.0.1:17070/model/abc-123/api'

    def test_login(self, client: MockClient, ws: MockWebSocket):
        assert ws.sent == [{
            'request-id': 1,
            'type': 'Admin',
            'version': 3,
            'request': 'Login',
            'params': {'auth-tag': 'user-admin', 'credentials': 'secret'},
        }]

    def test_login_with_tag(self):
        ws = MockWebSocket([LOGIN_OK])
        MockClient([ws], username='user-bob@external').connect()
        assert ws.sent[0]['params']['auth-tag'] == 'user-bob@external'

    def test_login_rejected(self):
        ws = MockWebSocket([{'error': 'invalid entity name or password', 'error-code': 'unauthorized access'}])
        client = MockClient([ws])
        with pytest.raises(APIError) as excinfo:
            client.connect()
        assert excinfo.value.request == 'Admin.Login'
        assert excinfo.value.code == 'unauthorized access'
        assert str(excinfo.value) == 'invalid entity name or password'
        assert ws.closed

    def test_cannot_connect(self):
        class Unreachable(Client):
            def _connect_websocket(self):
                raise ConnectionRefusedError(111, 'Connection refused')

        client = Unreachable('10.0.0.1:17070', 'abc', username='admin', password='x')
        with pytest.raises(ConnectionError):
            client.connect()

    def test_close_twice(self, client: MockClient, ws: MockWebSocket):
        client.close()
        client.close()
        assert ws.closed
        with pytest.raises(ConnectionError):
            client.full_status()


class TestRPC:
    def test_full_status(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append({'response': {
            'model': {'name': 'prod', 'model-status': {'status': 'available'}},
            'applications': {'db': {'charm': 'ch:db', 'units': {
                'db/0': {'workload-status': {'status': 'error', 'info': 'boom'}, 'machine': '0'},
            }}},
        }})
        status = client.full_status()
        assert isinstance(status, StatusSnapshot)
        assert status.applications['db'].units['db/0'].workload_status.info == 'boom'
        assert ws.requests()[-1] == ('Client', 'FullStatus', {'patterns': []})
        assert ws.sent[-1]['version'] == 6

    def test_resolve_unit_error(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append({'response': {'results': [{}]}})
        client.resolve_unit_error('db/0')
        assert ws.requests()[-1] == (
            'Application',
            'ResolveUnitErrors',
            {'tags': {'entities': [{'tag': 'unit-db-0'}]}, 'retry': True},
        )

    def test_resolve_unit_error_result_error(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append({'response': {'results': [
            {'error': {'message': 'unit "db/0" not found', 'code': 'not found'}},
        ]}})
        with pytest.raises(APIError) as excinfo:
            client.resolve_unit_error('db/0')
        assert excinfo.value.code == 'not found'
        assert str(excinfo.value) == 'unit "db/0" not found'

    def test_destroy_machines(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append({'response': {'results': [{'info': {}}, {'info': {}}]}})
        client.destroy_machines(['0', '1/lxd/2'], force=True)
        assert ws.requests()[-1] == (
            'MachineManager',
            'DestroyMachineWithParams',
            {'entities': [{'tag': 'machine-0'}, {'tag': 'machine-1-lxd-2'}], 'force': True},
        )

    def test_add_units(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append({'response': {'units': ['db/1']}})
        assert client.add_units('db', 1) == ['db/1']
        assert ws.requests()[-1] == ('Application', 'AddUnits', {'application': 'db', 'num-units': 1})

    def test_model_info(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append({'response': {'name': 'prod', 'uuid': 'abc', 'owner-tag': 'user-bob@external'}})
        info = client.model_info()
        assert info.owner_tag == 'user-bob@external'
        assert ws.requests()[-1] == ('Client', 'ModelInfo', {})

    def test_model_info_without_owner(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append({'response': {'name': 'prod', 'uuid': 'abc'}})
        with pytest.raises(ProtocolError) as excinfo:
            client.model_info()
        assert str(excinfo.value) == 'Client.ModelInfo: reply has no owner-tag'

    def test_application_config(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append({'response': {'application': 'shell', 'config': {
            'dns-name': {'value': 'shell.test', 'source': 'user'},
        }}})
        assert client.application_config('shell') == {
            'dns-name': {'value': 'shell.test', 'source': 'user'},
        }
        assert ws.requests()[-1] == ('Application', 'Get', {'application': 'shell'})

    def test_api_error(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append({'error': 'permission denied', 'error-code': 'unauthorized access'})
        with pytest.raises(APIError) as excinfo:
            client.full_status()
        assert excinfo.value.request == 'Client.FullStatus'
        assert repr(excinfo.value) == (
            "APIError('Client.FullStatus', 'unauthorized access', 'permission denied')"
        )

    def test_invalid_json(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append('not json')
        with pytest.raises(ProtocolError):
            client.full_status()

    def test_wrong_request_id(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append(json.dumps({'request-id': 99, 'response': {}}))
        with pytest.raises(ProtocolError):
            client.full_status()

    def test_connection_dropped(self, client: MockClient, ws: MockWebSocket):
        ws.replies.append(websocket.WebSocketConnectionClosedException('gone'))
        with pytest.raises(ConnectionError):
            client.full_status()

    def test_request_ids_increase(self, client: MockClient, ws: MockWebSocket):
        ws.replies.extend([{'response': {}}, {'response': {}}])
        client.add_units('db', 1)
        client.add_units('db', 2)
        assert [m['request-id'] for m in ws.sent] == [1, 2, 3]


class TestWatch:
    def test_first_delta(self, client: MockClient):
        delta = [['unit', 'change', {'name': 'db/0'}]]
        watch_ws = MockWebSocket([
            LOGIN_OK,
            {'response': {'watcher-id': '7'}},
            {'response': {'deltas': delta}},
        ])
        client.sockets.append(watch_ws)
        assert watch_once(client, timeout=5) == delta
        assert watch_ws.requests()[1] == ('Client', 'WatchAll', {})
        assert watch_ws.sent[2]['type'] == 'AllWatcher'
        assert watch_ws.sent[2]['request'] == 'Next'
        assert watch_ws.sent[2]['id'] == '7'
        assert watch_ws.closed

    def test_error(self, client: MockClient):
        watch_ws = MockWebSocket([
            LOGIN_OK,
            {'response': {'watcher-id': '7'}},
            {'error': 'watcher was stopped', 'error-code': 'stopped'},
        ])
        client.sockets.append(watch_ws)
        with pytest.raises(WatchError) as excinfo:
            watch_once(client, timeout=5)
        assert str(excinfo.value) == 'watcher was stopped'

    def test_watch_all_fails(self, client: MockClient):
        watch_ws = MockWebSocket([LOGIN_OK, {'error': 'permission denied'}])
        client.sockets.append(watch_ws)
        with pytest.raises(APIError):
            client.watch(lambda error, delta: None)
        assert watch_ws.closed

    def test_watch_all_without_watcher_id(self, client: MockClient):
        watch_ws = MockWebSocket([LOGIN_OK, {'response': {}}])
        client.sockets.append(watch_ws)
        with pytest.raises(ProtocolError):
            client.watch(lambda error, delta: None)
        assert watch_ws.closed

    def test_stop_while_waiting(self, client: MockClient):
        events: list[Any] = []
        watch_ws = MockWebSocket([LOGIN_OK, {'response': {'watcher-id': '7'}}])
        client.sockets.append(watch_ws)
        watcher = client.watch(lambda error, delta: events.append((error, delta)))
        watcher.stop()
        watcher._thread.join(5)
        assert not watcher._thread.is_alive()
        assert events == []
        assert watch_ws.closed


class TestClientProvider:
    def test_acquire(self, monkeypatch: pytest.MonkeyPatch):
        ws = MockWebSocket([LOGIN_OK])
        monkeypatch.setattr(Client, '_connect_websocket', lambda self: ws)
        provider = ClientProvider('10.0.0.1:17070', 'abc', username='admin', password='secret')
        conn, release = provider.acquire()
        assert isinstance(conn, Client)
        assert ws.requests() == [
            ('Admin', 'Login', {'auth-tag': 'user-admin', 'credentials': 'secret'}),
        ]
        release()
        assert ws.closed
