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

"""Send the library's log messages to a notification sink."""

from __future__ import annotations

import logging

from .sink import NotificationSink


class SinkLogHandler(logging.Handler):
    """A handler that forwards log records to :meth:`NotificationSink.log`."""

    def __init__(self, sink: NotificationSink, level: int = logging.INFO):
        super().__init__(level)
        self.sink = sink

    def emit(self, record: logging.LogRecord):
        """Send the formatted record to the sink.

        This method is not used directly, but by :class:`logging.Handler`
        itself as part of the logging machinery.
        """
        self.sink.log(self.format(record))


def setup_logging(sink: NotificationSink, debug: bool = False) -> logging.Logger:
    """Set up the ``jujuhealth`` logger to forward messages to ``sink``.

    Args:
        sink: the sink to send log lines to.
        debug: if True, forward DEBUG messages too, and also write all
            messages to stderr.

    Returns:
        The configured ``jujuhealth`` logger.
    """
    logger = logging.getLogger('jujuhealth')
    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(level)
    logger.addHandler(SinkLogHandler(sink, level))

    if debug:
        handler = logging.StreamHandler()
        formatter = logging.Formatter('%(asctime)s %(levelname)-8s %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
