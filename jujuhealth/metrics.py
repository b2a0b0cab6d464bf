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

"""Read error counters from a jujushell server's Prometheus metrics."""

from __future__ import annotations

import logging
import urllib.error
import urllib.request

from .errors import APIError, ConnectionError, ProtocolError

logger = logging.getLogger(__name__)

ERRORS_METRIC = 'jujushell_errors_count'


def parse_error_counts(text: str) -> dict[str, int]:
    """Return the number of errors reported for each error message.

    Only samples of the :data:`ERRORS_METRIC` metric are considered, for
    example::

        jujushell_errors_count{message="cannot log in"} 3

    The message is the text between the first and the last double quote;
    samples repeating a message are added together.
    """
    errors: dict[str, int] = {}
    for line in text.splitlines():
        if not line.startswith(ERRORS_METRIC):
            continue
        first, last = line.find('"'), line.rfind('"')
        message = line[first + 1:last] if first != -1 and last > first else ''
        value = line.rsplit(' ', 1)[-1]
        try:
            count = int(float(value))
        except ValueError:
            logger.warning('ignoring %s sample with invalid value %r', ERRORS_METRIC, value)
            continue
        errors[message] = errors.get(message, 0) + count
    return errors


def format_error_table(errors: dict[str, int]) -> str:
    """Format error counts as a two-column text table."""
    rows = [('message', '#')] + [(message, str(count)) for message, count in errors.items()]
    width = max(len(message) for message, _ in rows)
    return ''.join(f'{message:<{width}}  {count}\n' for message, count in rows)


def fetch_metrics(url: str, timeout: float = 10.0) -> str:
    """GET the metrics page at ``url`` and return its body.

    Raises:
        APIError: if the server answers with a non-2xx status.
        ProtocolError: if the body is not valid UTF-8.
        ConnectionError: if the server can't be reached.
    """
    request = urllib.request.Request(url, method='GET', headers={'Accept': 'text/plain'})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:  # noqa: S310
            body = response.read()
    except urllib.error.HTTPError as e:
        raise APIError(f'GET {url}', str(e.code), f'{e.code} {e.reason}') from None
    except urllib.error.URLError as e:
        raise ConnectionError(f'cannot reach {url}: {e.reason}') from e
    except OSError as e:
        raise ConnectionError(f'cannot read {url}: {e}') from e
    try:
        return body.decode('utf-8')
    except UnicodeDecodeError as e:
        raise ProtocolError(f'{url}: invalid UTF-8 in metrics body: {e}') from None
