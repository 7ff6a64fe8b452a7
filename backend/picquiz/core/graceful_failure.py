"""
Graceful failure utilities.

Reusable context manager for non-critical operations that should not block
the main execution flow. It centralizes the "graceful degradation" pattern:
1. Attempting an operation
2. Logging any exceptions with context
3. Continuing execution without raising

Usage:
    from picquiz.core.graceful_failure import graceful_failure

    with graceful_failure("record question stats", logger):
        stats_store.record_answer(question_name, is_correct)

    with graceful_failure("touch last seen", logger, log_level=logging.ERROR):
        account_store.update(account)
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Optional


@contextmanager
def graceful_failure(
    operation_name: str,
    logger: logging.Logger,
    *,
    log_level: int = logging.WARNING,
    exc_info: bool = False,
    context: Optional[dict[str, Any]] = None,
) -> Generator[None, None, None]:
    """Context manager for non-critical operations that should not block execution.

    Use this only for side effects whose failure is acceptable (statistics,
    presence, explanation lookups). Core state changes such as account
    counters or session updates must propagate their errors instead.

    Args:
        operation_name: Human-readable name of the operation for logging
            (e.g., "record question stats").
        logger: The logger instance to use for logging errors.
        log_level: Logging level for error messages. Defaults to WARNING.
        exc_info: Whether to include exception traceback in log.
        context: Optional dictionary of additional context to include in the
            log message (e.g., {"username": "alice"}).

    Example:
        >>> with graceful_failure(
        ...     "record question stats",
        ...     logger,
        ...     context={"question": "q1.png"},
        ... ):
        ...     stats_store.record_answer("q1.png", True)
    """
    try:
        yield
    except Exception as e:
        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            message = f"Failed to {operation_name} ({context_str}): {e}"
        else:
            message = f"Failed to {operation_name}: {e}"

        logger.log(log_level, message, exc_info=exc_info)
