"""Two-phase scheduling of test matrices.

Each schedulable test is drained through two bounded pools:

- the run queue, `limit` tests in flight at once, where each item runs
  one matrix iteration;
- the install pool, `install_limit` installs at once, which a run item
  enters before its iteration when the run needs installing.

A test whose iteration succeeds goes back to the front of the run
queue so in-progress matrices finish before new ones start. A failed or
erroring iteration is terminal for that test.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Iterable

from .models import RunSignal, ScheduleResult, TestStatus
from .ports import SchedulableTestPort, TestRunPort

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[SchedulableTestPort, TestStatus], None]


class TestScheduler:
    """Drains schedulable tests through the install and run pools."""

    __test__ = False

    def __init__(
        self,
        limit: int = 1,
        install_limit: int = 1,
        on_update: UpdateCallback | None = None,
    ):
        """Initialize the scheduler.

        Args:
            limit: Maximum matrix iterations running at once.
            install_limit: Maximum install phases running at once.
            on_update: Called with (test, status) on every transition.
        """
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        if install_limit < 1:
            raise ValueError(f"install_limit must be >= 1, got {install_limit}")
        self.limit = limit
        self.install_limit = install_limit
        self.on_update = on_update

    @staticmethod
    def order(tests: Iterable[SchedulableTestPort]) -> list[SchedulableTestPort]:
        """Sort tests by matrix size, largest first; ties keep input order."""
        return sorted(tests, key=lambda test: test.matrix_size, reverse=True)

    async def drain(self, tests: Iterable[SchedulableTestPort]) -> ScheduleResult:
        """Run every test's matrix to completion.

        Returns once the run queue is empty and nothing is in flight.

        Raises:
            ValueError: If two tests share a folder.
            Exception: Anything a test's run() raises; in-flight
                iterations are cancelled first. Exceptions from a run
                object's advance() settle that test as an error instead.
        """
        pending: deque[SchedulableTestPort] = deque(self.order(tests))
        install_slots = asyncio.Semaphore(self.install_limit)
        failures: list[SchedulableTestPort] = []
        statuses = {test.folder: TestStatus.QUEUED for test in pending}
        if len(statuses) != len(pending):
            raise ValueError("Schedulable tests must have distinct folders")
        in_flight: dict[asyncio.Task[bool], SchedulableTestPort] = {}

        def update(test: SchedulableTestPort, status: TestStatus) -> None:
            statuses[test.folder] = status
            logger.debug(f"{test.folder}: {status.value}")
            if self.on_update is not None:
                self.on_update(test, status)

        logger.info(
            f"Scheduling {len(pending)} tests (limit={self.limit}, "
            f"install_limit={self.install_limit})"
        )

        try:
            while pending or in_flight:
                while pending and len(in_flight) < self.limit:
                    test = pending.popleft()
                    task = asyncio.create_task(
                        self._run_iteration(test, install_slots, failures, update)
                    )
                    in_flight[task] = test

                done, _ = await asyncio.wait(
                    in_flight, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    test = in_flight.pop(task)
                    if task.result():
                        pending.appendleft(test)
        finally:
            for task in in_flight:
                task.cancel()
            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)

        logger.info(
            f"Scheduling finished: {len(statuses)} tests, {len(failures)} failures"
        )
        return ScheduleResult(failures=tuple(failures), statuses=statuses)

    async def _run_iteration(
        self,
        test: SchedulableTestPort,
        install_slots: asyncio.Semaphore,
        failures: list[SchedulableTestPort],
        update: UpdateCallback,
    ) -> bool:
        """Run one matrix iteration of test.

        Returns:
            True if the test should be requeued at the front of the run queue.
        """
        test_run = test.run()
        if test_run is None:
            update(test, TestStatus.DONE)
            return False

        if test_run.needs_install:
            update(test, TestStatus.WAITING)
            async with install_slots:
                update(test, TestStatus.INSTALLING)
                signal = await self._advance(test, test_run)
        else:
            # Runs without an install still pass through the install handshake.
            signal = await self._advance(test, test_run)

        if signal is not RunSignal.ERRED:
            update(test, TestStatus.RUNNING)
            signal = await self._advance(test, test_run)

        return self._settle(test, test_run, signal, failures, update)

    @staticmethod
    async def _advance(test: SchedulableTestPort, test_run: TestRunPort) -> RunSignal:
        """Advance test_run; an exception from the run object is an erred run."""
        try:
            return await test_run.advance()
        except Exception as e:
            logger.error(f"{test.folder}: run raised {e!r}", exc_info=True)
            return RunSignal.ERRED

    @staticmethod
    def _settle(
        test: SchedulableTestPort,
        test_run: TestRunPort,
        signal: RunSignal,
        failures: list[SchedulableTestPort],
        update: UpdateCallback,
    ) -> bool:
        if signal is RunSignal.ERRED:
            failures.append(test)
            update(test, TestStatus.ERROR)
            return False

        if signal is RunSignal.ENDED_FAILURE or test_run.failed:
            failures.append(test)
            update(test, TestStatus.FAILURE)
            return False

        if signal is not RunSignal.ENDED_SUCCESS:
            raise RuntimeError(f"{test.folder}: unexpected run signal {signal}")

        update(test, TestStatus.SUCCESS)
        return True
