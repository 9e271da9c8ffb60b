"""
Correction Logger

DESIGN DECISION: The corrector never reaches for a global logger.
It receives a CorrectionLogger, so:
1. Tests can capture exactly what was decided
2. Callers can bind request context (transaction, account) once
3. The structlog setup lives in one place

Log events are informational only. Nothing downstream parses them
to decide behaviour.
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and therefore structlog) to stdout at `level`.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )


class CorrectionLogger(ABC):
    """
    Structured logging capability handed to the corrector and webhook flow.

    Each call takes a snake_case event name plus keyword fields.
    """

    @abstractmethod
    def info(self, event: str, **fields: Any) -> None:
        pass

    @abstractmethod
    def warning(self, event: str, **fields: Any) -> None:
        pass

    @abstractmethod
    def error(self, event: str, **fields: Any) -> None:
        pass

    @abstractmethod
    def bind(self, **fields: Any) -> "CorrectionLogger":
        """Return a logger that adds `fields` to every event."""
        pass


class StructlogCorrectionLogger(CorrectionLogger):
    """CorrectionLogger backed by structlog's JSON pipeline."""

    def __init__(self, logger: Optional[Any] = None, name: str = "potbalancer"):
        self._logger = logger if logger is not None else structlog.get_logger(name)

    def info(self, event: str, **fields: Any) -> None:
        self._logger.info(event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._logger.warning(event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._logger.error(event, **fields)

    def bind(self, **fields: Any) -> "StructlogCorrectionLogger":
        return StructlogCorrectionLogger(self._logger.bind(**fields))


class NullCorrectionLogger(CorrectionLogger):
    """Discards everything."""

    def info(self, event: str, **fields: Any) -> None:
        pass

    def warning(self, event: str, **fields: Any) -> None:
        pass

    def error(self, event: str, **fields: Any) -> None:
        pass

    def bind(self, **fields: Any) -> "NullCorrectionLogger":
        return self


def get_logger(name: str = "potbalancer") -> CorrectionLogger:
    """Default logger for components that were not handed one."""
    return StructlogCorrectionLogger(name=name)


def describe_exception(error: BaseException) -> dict[str, Any]:
    """Fields identifying an exception, for error events."""
    return {
        "error_type": type(error).__name__,
        "error": str(error),
    }
