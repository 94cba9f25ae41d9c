"""
Bounded concurrent execution
"""

import asyncio
from typing import Awaitable, List


async def execute_with_limit(tasks: List[Awaitable], max_concurrent: int = 3) -> List:
    """Run awaitables concurrently, at most max_concurrent at a time

    Results keep the order of tasks; exceptions are returned in place of
    results (gather with return_exceptions=True).
    """
    semaphore = asyncio.Semaphore(max_concurrent)

    async def run_with_semaphore(task):
        async with semaphore:
            return await task

    return await asyncio.gather(
        *[run_with_semaphore(task) for task in tasks],
        return_exceptions=True
    )
