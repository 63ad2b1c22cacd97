"""
LinguaLens - Timeout Utilities
==============================
Deadlines for slow work: Tesseract OCR and PDF rendering run in worker
threads and must not hold a request open indefinitely.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from exceptions import LinguaLensBaseException
from logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class OperationTimeoutError(LinguaLensBaseException):
    """Raised when an operation exceeds its timeout."""

    status_code = 504

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"Operation '{operation}' exceeded timeout of {timeout}s",
            {"operation": operation, "timeout": timeout},
        )
        self.operation = operation
        self.timeout = timeout


async def run_with_timeout(coro: Awaitable[T], timeout: float, operation_name: str = "operation") -> T:
    """
    Await ``coro`` for at most ``timeout`` seconds.

    Raises:
        OperationTimeoutError: If operation exceeds timeout
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning("operation_timed_out", operation=operation_name, timeout=timeout)
        raise OperationTimeoutError(operation_name, timeout) from e


async def run_blocking(
    func: Callable[..., T],
    *args: Any,
    timeout: float,
    operation_name: Optional[str] = None,
) -> T:
    """
    Run a blocking callable in a worker thread with a deadline.

    The thread cannot be interrupted; on timeout its eventual result is
    discarded.

    Example:
        ```python
        pdf = await run_blocking(generate_pdf, doc, timeout=30.0)
        ```
    """
    return await run_with_timeout(
        asyncio.to_thread(func, *args),
        timeout=timeout,
        operation_name=operation_name or func.__name__,
    )
