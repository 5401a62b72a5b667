"""
Warden - Async Utilities
========================

Utilities for handling async operations with proper error logging.
Eliminates silent failures in fire-and-forget moderation side effects.

Usage:
    from src.utils.async_utils import safe_async_operation

    # A failed DM must not stop the mute that follows it:
    await safe_async_operation("Send DM", platform.send_direct_message(...), area="platform.dm")
    await safe_async_operation("Assign Mute Role", platform.assign_role(...), area="platform.mute")
"""

import asyncio
from typing import Any, Coroutine, List, Optional, Set, Tuple

from src.core.logger import logger
from src.utils.metrics import record_failure


async def gather_with_logging(
    *operations: Tuple[str, Coroutine[Any, Any, Any]],
    context: Optional[str] = None,
) -> List[Any]:
    """
    Run multiple async operations concurrently with error logging.

    Unlike asyncio.gather with return_exceptions=True, this function
    logs any exceptions that occur so failures aren't silent.

    Args:
        *operations: Tuples of (operation_name, coroutine).
        context: Optional context string for error logs.

    Returns:
        List of results (including exceptions as values, not raised).
    """
    names = [name for name, _ in operations]
    coros = [coro for _, coro in operations]

    results = await asyncio.gather(*coros, return_exceptions=True)

    for i, result in enumerate(results):
        if isinstance(result, Exception):
            error_details = [
                ("Operation", names[i]),
                ("Error Type", type(result).__name__),
                ("Error", str(result)[:100]),
            ]
            if context:
                error_details.insert(0, ("Context", context))

            logger.warning("Async Operation Failed", error_details)
            record_failure(context or names[i], result)

    return results


async def safe_async_operation(
    name: str,
    coro: Coroutine[Any, Any, Any],
    default: Any = None,
    area: Optional[str] = None,
    log_level: str = "warning",
) -> Any:
    """
    Run a single async operation with error handling.

    Args:
        name: Name of the operation for logging.
        coro: The coroutine to run.
        default: Value to return if operation fails.
        area: Failure counter area; defaults to the operation name.
        log_level: Log level for errors ("debug", "warning", "error").

    Returns:
        Result of the coroutine, or default if it fails.
    """
    try:
        return await coro
    except asyncio.CancelledError:
        raise
    except Exception as e:
        error_details = [
            ("Operation", name),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:100]),
        ]

        if log_level == "debug":
            logger.debug("Async Operation Failed", error_details)
        elif log_level == "error":
            logger.error("Async Operation Failed", error_details)
        else:
            logger.warning("Async Operation Failed", error_details)

        record_failure(area or name, e)
        return default


# =============================================================================
# Safe Background Tasks
# =============================================================================

def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: str = "Background Task",
) -> asyncio.Task:
    """
    Create a background task with automatic error logging.

    Unlike raw asyncio.create_task(), this catches and logs any exceptions
    instead of letting them silently disappear.

    Args:
        coro: The coroutine to run as a background task.
        name: Name for logging purposes.

    Returns:
        The created asyncio.Task.
    """
    async def wrapped():
        try:
            return await coro
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Background Task Failed", [
                ("Task", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:200]),
            ])
            record_failure(f"task.{name}", e)

    return asyncio.create_task(wrapped(), name=name)


class TaskGroupTracker:
    """
    Keeps references to fire-and-forget tasks until they finish.

    DESIGN:
        asyncio only keeps weak references to tasks, so a spawned side
        effect can be garbage collected mid-flight. The tracker holds them
        and lets shutdown code or tests wait for everything outstanding.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Start a safe task and track it until completion."""
        task = create_safe_task(coro, name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait until every tracked task (including ones spawned meanwhile) is done."""
        while self._tasks:
            pending = list(self._tasks)
            done, not_done = await asyncio.wait(pending, timeout=timeout)
            if not_done:
                logger.warning("Task Drain Timed Out", [
                    ("Pending", str(len(not_done))),
                ])
                return

    def cancel_all(self) -> None:
        """Cancel every tracked task."""
        for task in list(self._tasks):
            task.cancel()

    def __len__(self) -> int:
        return len(self._tasks)


__all__ = [
    "gather_with_logging",
    "safe_async_operation",
    "create_safe_task",
    "TaskGroupTracker",
]
