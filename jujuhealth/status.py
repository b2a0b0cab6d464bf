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

"""Snapshot of a Juju model's status, as returned by the FullStatus API."""

from __future__ import annotations

import dataclasses
import re
import types
from collections.abc import Mapping
from typing import Any

__all__ = [
    'ApplicationStatus',
    'ModelInfo',
    'ModelStatus',
    'StatusInfo',
    'StatusSnapshot',
    'UnitStatus',
    'UserTag',
]


def _readonly(d: dict[str, Any]) -> Mapping[str, Any]:
    return types.MappingProxyType(d)


@dataclasses.dataclass(frozen=True, kw_only=True)
class StatusInfo:
    """A status value and its message, such as a unit's workload status."""

    status: str
    """Status name, for example "active", "error" or "available"."""

    info: str = ''
    """Message that goes with the status."""

    @classmethod
    def _from_dict(cls, d: Mapping[str, Any] | None) -> StatusInfo:
        d = d or {}
        # The API spells these "status" and "info", the CLI "current" and "message".
        return cls(
            status=d.get('status', d.get('current', '')) or '',
            info=d.get('info', d.get('message', '')) or '',
        )


@dataclasses.dataclass(frozen=True, kw_only=True)
class UnitStatus:
    """Status of a single unit."""

    workload_status: StatusInfo
    machine: str = ''
    """ID of the machine the unit is placed on; empty for Kubernetes units."""

    @classmethod
    def _from_dict(cls, d: Mapping[str, Any]) -> UnitStatus:
        return cls(
            workload_status=StatusInfo._from_dict(d.get('workload-status')),
            machine=d.get('machine') or '',
        )


@dataclasses.dataclass(frozen=True, kw_only=True)
class ApplicationStatus:
    """Status of an application and its units."""

    charm: str
    units: Mapping[str, UnitStatus] = dataclasses.field(
        default_factory=lambda: _readonly({})
    )

    @classmethod
    def _from_dict(cls, d: Mapping[str, Any]) -> ApplicationStatus:
        units = {name: UnitStatus._from_dict(u) for name, u in (d.get('units') or {}).items()}
        return cls(charm=d.get('charm', ''), units=_readonly(units))


@dataclasses.dataclass(frozen=True, kw_only=True)
class ModelStatus:
    """Name and availability of the model itself."""

    name: str
    status: StatusInfo

    @property
    def available(self) -> bool:
        return self.status.status == 'available'

    @classmethod
    def _from_dict(cls, d: Mapping[str, Any]) -> ModelStatus:
        return cls(name=d.get('name', ''), status=StatusInfo._from_dict(d.get('model-status')))


@dataclasses.dataclass(frozen=True, kw_only=True)
class StatusSnapshot:
    """Immutable view of a model's status at one instant.

    Snapshots are never updated in place: to see the effect of a change, fetch
    a new one. Applications and units keep the order the controller sent them in.
    """

    model: ModelStatus
    applications: Mapping[str, ApplicationStatus] = dataclasses.field(
        default_factory=lambda: _readonly({})
    )

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> StatusSnapshot:
        """Create a snapshot from FullStatus (or ``juju status --format=json``) output."""
        apps = d.get('applications') or {}
        return cls(
            model=ModelStatus._from_dict(d.get('model') or {}),
            applications=_readonly(
                {name: ApplicationStatus._from_dict(app) for name, app in apps.items()}
            ),
        )


@dataclasses.dataclass(frozen=True, kw_only=True)
class ModelInfo:
    """Model details returned by the ModelInfo API."""

    name: str
    uuid: str
    owner_tag: str

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> ModelInfo:
        return cls(name=d.get('name', ''), uuid=d.get('uuid', ''), owner_tag=d['owner-tag'])


@dataclasses.dataclass(frozen=True)
class UserTag:
    """A parsed Juju user tag.

    The grammar is::

        user-tag = "user-" username [ "@" domain ]

    Local users have no domain (``user-admin``); external users carry one
    (``user-bob@external``).
    """

    PREFIX = 'user-'

    username: str
    domain: str = ''

    _pattern_re = re.compile(r'^user-(?P<username>[^@]+)(@(?P<domain>[^@]+))?$')

    @classmethod
    def parse(cls, tag: str) -> UserTag:
        """Parse a tag such as ``user-bob@external``.

        Raises:
            ValueError: if ``tag`` doesn't follow the user tag grammar.
        """
        m = cls._pattern_re.match(tag)
        if not m:
            raise ValueError(f'{tag!r} is not a valid user tag')
        return cls(username=m.group('username'), domain=m.group('domain') or '')

    def __str__(self):
        if self.domain:
            return f'{self.PREFIX}{self.username}@{self.domain}'
        return f'{self.PREFIX}{self.username}'
