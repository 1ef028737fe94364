"""Tests for supervised background tasks and the container context."""

from __future__ import annotations

import logging
import threading

import pytest

from beanwire import CancelContext, Container
from beanwire.supervisor import TaskSupervisor


class Poller:
    ctx: CancelContext

    def __init__(self) -> None:
        self.cancelled_before_destroy: bool | None = None

    def on_destroy(self) -> None:
        self.cancelled_before_destroy = self.ctx.cancelled


class TestCancelContext:
    def test_cancel_sets_flag(self) -> None:
        ctx = CancelContext()

        assert not ctx.cancelled
        ctx.cancel()

        assert ctx.cancelled
        assert ctx.wait(0)
        assert repr(ctx) == "CancelContext(cancelled=True)"

    def test_wait_times_out(self) -> None:
        assert not CancelContext().wait(0.01)


class TestTaskSupervisor:
    def test_shutdown_cancels_and_joins_tasks(self) -> None:
        supervisor = TaskSupervisor()
        started = threading.Event()
        finished: list[bool] = []

        def task(ctx: CancelContext) -> None:
            started.set()
            ctx.wait()
            finished.append(ctx.cancelled)

        thread = supervisor.go(task)
        assert started.wait(5)

        supervisor.shutdown()

        assert finished == [True]
        assert not thread.is_alive()
        assert thread.name.startswith("beanwire-task-")

    def test_task_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        supervisor = TaskSupervisor()

        def explode(ctx: CancelContext) -> None:
            msg = "task failed"
            raise RuntimeError(msg)

        with caplog.at_level(logging.ERROR, logger="beanwire"):
            supervisor.go(explode)
            supervisor.shutdown()

        records = [record for record in caplog.records if "Supervised task" in record.getMessage()]
        assert len(records) == 1
        assert records[0].exc_info is not None

    def test_finished_tasks_are_pruned(self) -> None:
        supervisor = TaskSupervisor()

        first = supervisor.go(lambda ctx: None)
        first.join(5)
        second = supervisor.go(CancelContext.wait)

        assert supervisor._threads == [second]
        supervisor.shutdown()


class TestContainerTasks:
    def test_close_waits_for_tasks(self, container: Container) -> None:
        observed: list[bool] = []
        container.refresh()

        def task(ctx: CancelContext) -> None:
            ctx.wait()
            observed.append(ctx.cancelled)

        container.go(task)
        container.close()

        assert observed == [True]
        assert container.context.cancelled

    def test_context_is_cancelled_before_destroy_hooks(self, container: Container) -> None:
        poller = Poller()
        container.add_object(poller)
        container.refresh()

        container.close()

        assert container.context_aware
        assert poller.cancelled_before_destroy is True

    def test_go_waits_while_close_is_in_progress(self, container: Container) -> None:
        container.refresh()
        started = threading.Event()

        def task(ctx: CancelContext) -> None:
            started.set()

        with container._close_lock:
            starter = threading.Thread(target=container.go, args=(task,))
            starter.start()
            assert not started.wait(0.05)

        starter.join(5)
        container.close()

        assert started.is_set()
        assert container._supervisor._threads == []
