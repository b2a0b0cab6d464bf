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

"""Where checks report what they find.

A notification sink is whatever presents results to an operator: a terminal,
a web page, a chat bot. Checks only ever talk to it through the small
:class:`NotificationSink` interface, so they don't care how it renders.
"""

from __future__ import annotations

from typing import Callable, Protocol

Write = Callable[[str], None]
"""Output callback handed to an action when it's invoked."""

Invoke = Callable[[Write], None]
"""An action's body, called with the :data:`Write` for its output."""


class NotificationSink(Protocol):
    """Receives notifications, log lines, actions and links from the checks."""

    def notify_error(self, message: str) -> None:
        """Report a problem found in the model."""
        ...

    def log(self, message: str) -> None:
        """Record progress, for example a remediation step being taken."""
        ...

    def add_action(self, label: str, invoke: Invoke) -> None:
        """Offer an operator-triggered action for the last reported problem."""
        ...

    def add_link(self, label: str, url: str) -> None:
        """Offer a link related to the last reported problem."""
        ...

    def refresh(self) -> None:
        """Signal that a new status snapshot was loaded.

        Notifications, actions and links reported before this call belong to
        the previous snapshot and may be discarded.
        """
        ...
