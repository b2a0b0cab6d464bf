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

"""YAML reading and writing for config files and rendered status."""

from __future__ import annotations

from typing import Any, TextIO

import yaml

_loader = getattr(yaml, 'CSafeLoader', yaml.SafeLoader)
_dumper = getattr(yaml, 'CSafeDumper', yaml.SafeDumper)


def safe_load(stream: str | TextIO) -> Any:
    """Parse a YAML document with the safe loader (libyaml-backed when installed)."""
    return yaml.load(stream, Loader=_loader)  # noqa: S506


def safe_dump(data: Any, stream: TextIO | None = None) -> str:
    """Render ``data`` as block-style YAML, keeping mapping keys in insertion order."""
    return yaml.dump(
        data, stream=stream, Dumper=_dumper, sort_keys=False, default_flow_style=False
    )  # type: ignore
