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

"""Exceptions raised while monitoring and remediating a Juju model."""

from __future__ import annotations

import builtins
from typing import Any


class Error(Exception):
    """Base class of the errors raised by juju-health."""

    def __repr__(self):
        return f'<{type(self).__module__}.{type(self).__name__} {self.args}>'


class ConnectionError(Error):
    """Raised when the controller can't be reached or the connection drops."""


class ProtocolError(Error):
    """Raised when the controller sends a reply that can't be understood."""


class TimeoutError(builtins.TimeoutError, Error):
    """Raised when waiting on the controller takes longer than allowed."""


class APIError(Error):
    """Raised when the controller answers a request with an error."""

    request: str
    """Facade and method of the failed request, for example Client.FullStatus."""

    code: str
    """Juju error code; empty if the controller didn't provide one."""

    message: str
    """Human-readable error message from the controller."""

    body: dict[str, Any]
    """The full error reply, parsed from JSON."""

    def __init__(self, request: str, code: str, message: str, body: dict[str, Any] | None = None):
        super().__init__(message)  # Makes str(e) return message
        self.request = request
        self.code = code
        self.message = message
        self.body = body or {}

    def __repr__(self):
        return f'APIError({self.request!r}, {self.code!r}, {self.message!r})'


class WatchError(Error):
    """Raised when a delta watch reports an error instead of a change."""


class RemediationError(Error):
    """Raised when a control-plane call made by a remediation action fails."""

    action: str
    """Label of the action that failed, for example Retry."""

    unit: str
    """Name of the unit being remediated."""

    def __init__(self, action: str, unit: str, cause: BaseException):
        super().__init__(f'{action.lower()} unit {unit} failed: {cause}')
        self.action = action
        self.unit = unit
        self.cause = cause


class PartialRemediationError(RemediationError):
    """Raised when a multi-step remediation stopped after changing the model.

    The completed steps are not rolled back, so the model needs manual
    attention (for example, a destroyed machine with no replacement unit).
    """

    completed: list[str]
    """Descriptions of the steps that succeeded before the failure."""

    def __init__(self, action: str, unit: str, cause: BaseException, completed: list[str]):
        super().__init__(action, unit, cause)
        self.completed = completed

    def __str__(self):
        done = ', '.join(self.completed)
        return f'{super().__str__()} (already done: {done}; manual intervention required)'
