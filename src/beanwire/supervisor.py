from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class CancelContext:
    """Cancellable context shared by the container and its supervised tasks.

    Beans receive it through an attribute annotated ``CancelContext``; tasks
    started with ``Container.go`` receive it as their only argument.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context is cancelled or ``timeout`` elapses.

        Returns:
            ``True`` when the context was cancelled.

        """
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"CancelContext(cancelled={self.cancelled})"


class TaskSupervisor:
    """Run background tasks bound to one ``CancelContext``.

    Failures inside a task are logged and never propagate to the caller.
    ``shutdown`` cancels the context and waits for every task without a
    timeout.
    """

    def __init__(self, context: CancelContext | None = None) -> None:
        self._context = context or CancelContext()
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def context(self) -> CancelContext:
        return self._context

    def go(self, fn: Callable[[CancelContext], Any]) -> threading.Thread:
        name = getattr(fn, "__qualname__", None) or repr(fn)
        thread = threading.Thread(
            target=self._run,
            args=(fn, name),
            name=f"beanwire-task-{name}",
            daemon=True,
        )
        with self._lock:
            self._threads = [item for item in self._threads if item.is_alive()]
            self._threads.append(thread)
        thread.start()
        logger.debug("Started supervised task %s", name)
        return thread

    def shutdown(self) -> None:
        self._context.cancel()
        with self._lock:
            threads = list(self._threads)
            self._threads.clear()
        for thread in threads:
            thread.join()
        logger.debug("Supervised tasks drained: %d", len(threads))

    def _run(self, fn: Callable[[CancelContext], Any], name: str) -> None:
        try:
            fn(self._context)
        except Exception:
            logger.exception("Supervised task %s failed", name)


__all__ = ["CancelContext", "TaskSupervisor"]
