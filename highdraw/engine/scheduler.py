"""
Session-scoped task registry.

Every piece of scheduled work belonging to a session (the session driver and
any wake-up it awaits) runs inside a task registered under the session id, so
tearing a session down cancels all of it as a unit.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Coroutine, Dict, Set

logger = logging.getLogger(__name__)


class SessionTaskRegistry:
    """
    Keeps track of the asyncio tasks spawned for each session.

    Finished tasks drop out of the registry on their own.
    """

    def __init__(self):
        self._tasks: Dict[str, Set[asyncio.Task]] = defaultdict(set)

    def spawn(self, session_id: str, coro: Coroutine, name: str = None) -> asyncio.Task:
        """
        Schedule a coroutine as a task owned by a session.

        Args:
            session_id: Session the task belongs to
            coro: Coroutine to run
            name: Optional task name for debugging

        Returns:
            The created task
        """
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks[session_id].add(task)

        def _forget(finished: asyncio.Task) -> None:
            tasks = self._tasks.get(session_id)
            if tasks is not None:
                tasks.discard(finished)
                if not tasks:
                    del self._tasks[session_id]

        task.add_done_callback(_forget)
        return task

    def pending(self, session_id: str) -> int:
        """Number of unfinished tasks registered for a session."""
        return sum(1 for task in self._tasks.get(session_id, ()) if not task.done())

    async def cancel(self, session_id: str) -> int:
        """
        Cancel every task registered for a session and wait for them to unwind.

        Returns:
            Number of tasks that were cancelled
        """
        tasks = [task for task in self._tasks.pop(session_id, ()) if not task.done()]
        current = asyncio.current_task()
        for task in tasks:
            if task is not current:
                task.cancel()

        others = [task for task in tasks if task is not current]
        if others:
            await asyncio.gather(*others, return_exceptions=True)
            logger.debug("Cancelled %d task(s) for session %s", len(others), session_id)
        return len(others)

    async def cancel_all(self) -> None:
        """Cancel the tasks of every session."""
        for session_id in list(self._tasks):
            await self.cancel(session_id)
