"""
Helpers for orchestrating asyncio tasks.

These utilities only support tasks, not more generic futures, coroutines,
or other awaitables. In most case where we use it, we need specifically tasks,
as we not only wait for them, but also cancel them.
"""
import asyncio
from typing import TYPE_CHECKING, Any, Collection, Optional, Set, Tuple

# A workaround for a difference in tasks at runtime and type-checking time.
# Otherwise, at runtime: TypeError: 'type' object is not subscriptable.
if TYPE_CHECKING:
    Task = asyncio.Task[Any]
else:
    Task = asyncio.Task


async def wait(
        tasks: Collection[Task],
        *,
        timeout: Optional[float] = None,
        return_when: Any = asyncio.ALL_COMPLETED,
) -> Tuple[Set[Task], Set[Task]]:
    """
    A safer version of :func:`asyncio.wait` -- does not fail on an empty list.
    """
    if not tasks:
        return set(), set()
    done, pending = await asyncio.wait(tasks, timeout=timeout, return_when=return_when)
    return done, pending


async def cancel(
        tasks: Collection[Task],
) -> Set[Task]:
    """
    Cancel the tasks and wait for them to actually finish.

    The cancellation is cooperative: a task can still finish normally
    or with an error if it was already finishing. All of the tasks are
    returned as done, regardless of how they have finished.
    """
    for task in tasks:
        task.cancel()
    done, _ = await wait(tasks)
    return done


def failure(task: Task) -> Optional[BaseException]:
    """
    The exception of a finished task, or ``None`` if succeeded or cancelled.
    """
    if not task.done() or task.cancelled():
        return None
    return task.exception()
