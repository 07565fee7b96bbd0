"""Structured logging configuration.

Every event carries the service name and, while a request is being
handled, the request id and the cluster it runs against. Values under
credential-like keys are masked before rendering.
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar, Token
from enum import Enum
from typing import Any, Iterator

import structlog
from structlog.types import EventDict, Processor

from shared.config import LogFormat, LogLevel, get_settings

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
cluster_var: ContextVar[str | None] = ContextVar("cluster", default=None)

REDACTED = "***"
SENSITIVE_KEYS = frozenset({"authorization", "kubeconfig", "password", "raw", "token"})

# Third-party loggers that are too chatty below WARNING
NOISY_LOGGERS = ("httpx", "httpcore", "kubernetes", "websocket", "uvicorn.access")


def add_service_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    settings = get_settings()
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("environment", settings.environment.value)
    return event_dict


def add_request_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Copy the request id and cluster of the current request onto the event."""
    if request_id := request_id_var.get():
        event_dict["request_id"] = request_id
    if (cluster := cluster_var.get()) and "cluster" not in event_dict:
        event_dict["cluster"] = cluster
    return event_dict


def redact_credentials(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    for key in event_dict.keys() & SENSITIVE_KEYS:
        event_dict[key] = REDACTED
    return event_dict


def _value(option: Any) -> str:
    return option.value if isinstance(option, Enum) else str(option)


def setup_logging(
    log_level: LogLevel | str | None = None,
    log_format: LogFormat | str | None = None,
) -> None:
    """Configure structlog on top of the standard library logging module.

    Args:
        log_level: Override log level (defaults to settings.log_level)
        log_format: Override log format (defaults to settings.log_format)
    """
    settings = get_settings()
    level = LogLevel(_value(log_level or settings.log_level).upper())
    fmt = LogFormat(_value(log_format or settings.log_format).lower())

    logging.basicConfig(level=level.value, stream=sys.stdout, format="%(message)s")

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        add_service_context,
        add_request_context,
        redact_credentials,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if fmt == LogFormat.JSON:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """Binds a request id and cluster name to every event logged inside it.

    Usage:
        async with LogContext(request_id="abc123", cluster="clusterA"):
            logger.info("Forwarding event")  # Includes request_id and cluster
    """

    def __init__(self, request_id: str | None = None, cluster: str | None = None):
        self.request_id = request_id
        self.cluster = cluster
        self._tokens: list[tuple[ContextVar, Token]] = []

    def __enter__(self) -> "LogContext":
        for var, value in ((request_id_var, self.request_id), (cluster_var, self.cluster)):
            if value:
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def bind_cluster(cluster: str) -> None:
    """Tag the remaining events of the current request with ``cluster``."""
    cluster_var.set(cluster)


def log_request(
    logger: structlog.stdlib.BoundLogger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: str | None = None,
) -> None:
    """Log a completed HTTP request at a level matching its status."""
    if status_code >= 500:
        log = logger.error
    elif status_code >= 400:
        log = logger.warning
    else:
        log = logger.info
    log(
        "Request completed",
        http_method=method,
        http_path=path,
        http_status=status_code,
        duration_ms=round(duration_ms, 2),
        client_ip=client_ip,
    )


@contextmanager
def external_call(
    logger: structlog.stdlib.BoundLogger,
    service: str,
    operation: str,
) -> Iterator[None]:
    """Time a call to a dependency and log its outcome.

    Exceptions are logged and re-raised unchanged.
    """
    fields = {"external_service": service, "external_operation": operation}
    logger.debug("External call started", **fields)
    start = time.monotonic()
    try:
        yield
    except Exception as e:
        logger.warning(
            "External call failed",
            **fields,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
            error=f"{type(e).__name__}: {e}",
        )
        raise
    logger.debug(
        "External call completed",
        **fields,
        duration_ms=round((time.monotonic() - start) * 1000, 2),
    )
