"""
Joint execution of independent outbound queries.
"""

import asyncio
from typing import Any, Coroutine, List


def _first_leaf(exc: BaseException) -> BaseException:
    while isinstance(exc, BaseExceptionGroup):
        exc = exc.exceptions[0]
    return exc


async def run_jointly(*coroutines: Coroutine[Any, Any, Any]) -> List[Any]:
    """
    Run ``coroutines`` concurrently and return their results in order.

    The first failure cancels the remaining ones and is re-raised unwrapped.
    Cancelling the caller cancels every pending one.
    """
    try:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(coro) for coro in coroutines]
    except BaseExceptionGroup as group:
        raise _first_leaf(group) from None

    return [task.result() for task in tasks]
