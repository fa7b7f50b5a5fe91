# Copyright 2025 John Brosnihan
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
"""
Structured logging for the Player Registry API.

structlog is layered over the standard library logger. Development gets a
readable console renderer; every other environment emits one JSON object
per line with `message`, `level`, `timestamp`, `environment` and `service`.
Request-scoped fields (request_id, path, method) are bound through
structlog's contextvars so that every entry emitted while a request is in
flight carries them.
"""

import logging
import sys

import structlog
from structlog.types import EventDict, Processor

from app.config import get_settings


def add_environment(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp the service name and environment on the entry."""
    settings = get_settings()
    event_dict["environment"] = settings.service_environment
    event_dict["service"] = settings.service_name
    return event_dict


def rename_event_key(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Rename 'event' to 'message'.

    Log collectors index the human-readable text under 'message'; structlog
    stores it under 'event'.
    """
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def configure_logging() -> None:
    """
    Configure structlog for the process.

    Call once at application startup. The processor chain is:

    1. merge request-scoped contextvars (request_id, path, method)
    2. add environment/service, log level and ISO timestamp
    3. render: ConsoleRenderer in dev, JSONRenderer elsewhere
    """
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_environment,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.service_environment == "dev":
        processors = shared_processors + [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.ExceptionRenderer(),
            structlog.dev.ConsoleRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.ExceptionRenderer(),
            rename_event_key,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("list_players_attempt", page_number=0, page_size=3)
    """
    return structlog.get_logger(name)


def set_request_context(request_id: str, path: str, method: str) -> None:
    """Bind request-scoped fields for every log entry until cleared."""
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        path=path,
        method=method,
    )


def clear_request_context() -> None:
    """Drop the request-scoped fields bound by set_request_context."""
    structlog.contextvars.clear_contextvars()
