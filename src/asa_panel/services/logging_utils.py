"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across stock, recipe and assembly
operations.

Usage:
    from asa_panel.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="assemble_baskets",
        outcome="success",
        quantity=4,
        new_count=12,
    )
"""

import logging
from typing import Any

LOGGER_PREFIX = "asa_panel.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger named '<prefix>.<module>'.

    Example:
        >>> get_service_logger("asa_panel.services.assembly_service").name
        'asa_panel.services.assembly_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The message is "<operation>: <outcome>"; the context fields travel in
    ``extra`` so handlers can format or index them.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "assemble_baskets", "adjust_stock_quantity")
        outcome: Outcome description (e.g., "success", "insufficient_stock")
        level: Log level (default: INFO). Use DEBUG for frequent logs.
        **context: Additional context fields (entity IDs, quantities, shortfalls)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
