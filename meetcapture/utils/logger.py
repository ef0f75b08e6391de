# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Logging configuration for MeetCapture."""

import logging
import sys
from typing import List, Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str = "meetcapture",
    level: int = logging.INFO,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Setup and configure a logger for MeetCapture.

    Args:
        name: Logger name
        level: Logging level
        format_string: Custom format string for log messages

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))
    logger.addHandler(handler)

    return logger


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Reconfigure the default logger.

    Args:
        level: Logging level, as an int or a name such as "debug"
        log_file: Optional path of a file that receives the same records

    Returns:
        The default logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    configured = setup_logger(level=level)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        configured.addHandler(file_handler)
    return configured


class DiagnosticLogHandler(logging.Handler):
    """Collects formatted records into a list owned by one session.

    The controller attaches one of these for the lifetime of a single
    session so the accumulated log can be returned with the result.
    """

    def __init__(self, sink: List[str], level: int = logging.DEBUG) -> None:
        super().__init__(level)
        self.sink = sink
        self.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.sink.append(self.format(record))
        except Exception:
            self.handleError(record)


SESSION_LOGGER_NAME = "meetcapture.session"


def session_logger(session_id: str) -> logging.Logger:
    """
    Create a logger for one session.

    The logger is a child of ``meetcapture.session`` for propagation but is
    not registered with the logging manager, so it is garbage collected with
    the session instead of accumulating for the life of the process.
    """
    log = logging.Logger(f"{SESSION_LOGGER_NAME}.{session_id}")
    log.parent = logging.getLogger(SESSION_LOGGER_NAME)
    return log


# Default logger instance
logger = setup_logger()
