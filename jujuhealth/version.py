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

"""The juju-health version, taken from git when running from a checkout."""

import subprocess
from pathlib import Path

__all__ = ('version',)

_FALLBACK = '0.1'


def _git_describe(checkout: Path) -> str | None:
    if not (checkout / '.git').exists():
        return None
    try:
        proc = subprocess.run(
            ['git', 'describe', '--tags', '--dirty'],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            cwd=checkout,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return proc.stdout.strip().decode('utf8') or None


def _get_version() -> str:
    checkout = Path(__file__).parent.parent
    described = _git_describe(checkout)
    if described is None:
        return _FALLBACK + '.dev0+unknown'
    # v1.2-3-gabc123-dirty is reported as v1.2+3.gabc123.dirty
    public, _, local = described.partition('-')
    return f'{public}+{local.replace("-", ".")}' if local else public


version = _get_version()
