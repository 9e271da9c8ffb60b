"""Logging package."""

from potbalancer.audit.logger import (
    CorrectionLogger,
    NullCorrectionLogger,
    StructlogCorrectionLogger,
    configure_logging,
    describe_exception,
    get_logger,
)

__all__ = [
    "CorrectionLogger",
    "NullCorrectionLogger",
    "StructlogCorrectionLogger",
    "configure_logging",
    "describe_exception",
    "get_logger",
]
