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

"""Settings for a monitoring session."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, TextIO

from ._private import yaml

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, kw_only=True)
class MonitorConfig:
    """Tunable values used by the checks and the refresh scheduler."""

    refresh_delay: float = 3.0
    """Seconds between a remediation action and the status refresh it triggers."""

    watch_timeout: float | None = 30.0
    """Seconds the Show Status action waits for a change; None waits forever."""

    gui_url: str = 'https://jujucharms.com/u/{user}/{model}'
    """Template for the Open GUI link, formatted with ``user`` and ``model``."""

    jujushell_charm: str = 'cs:~juju-gui/jujushell'
    """Charm URL prefix identifying jujushell applications."""

    metrics_timeout: float = 10.0
    """Seconds allowed for fetching a jujushell metrics page."""

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> MonitorConfig:
        """Create a config from a mapping, such as one loaded from YAML.

        Keys may use dashes or underscores (``refresh-delay`` or ``refresh_delay``).

        Raises:
            ValueError: if a key is unknown or a value has the wrong type.
        """
        fields = {f.name: f for f in dataclasses.fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in d.items():
            name = key.replace('-', '_')
            if name not in fields:
                raise ValueError(f'unknown config option {key!r}')
            kwargs[name] = _check_type(key, fields[name].default, value)
        return cls(**kwargs)


def _check_type(key: str, default: Any, value: Any) -> Any:
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ValueError(f'config option {key!r} must be a string, not {value!r}')
        return value
    # Numeric options; watch_timeout may also be None.
    if value is None and key.replace('-', '_') == 'watch_timeout':
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f'config option {key!r} must be a number, not {value!r}')
    if value < 0:
        raise ValueError(f'config option {key!r} must not be negative, got {value!r}')
    return float(value)


def load_config(source: str | TextIO) -> MonitorConfig:
    """Load a :class:`MonitorConfig` from YAML text or a text stream.

    An empty document gives the default config.
    """
    data = yaml.safe_load(source)
    if data is None:
        return MonitorConfig()
    if not isinstance(data, dict):
        raise ValueError(f'config must be a mapping, not {type(data).__name__}')
    config = MonitorConfig.from_dict(data)
    logger.debug('loaded config: %s', config)
    return config
