"""Tests for the two-phase test scheduler."""

import pytest

from versioned.core.models import RunSignal, TestStatus
from versioned.core.ports import SchedulableTestPort
from versioned.core.scheduler import TestScheduler
from versioned.tests.fakes import FakeSchedulableTest, FakeTestRun, InstallTracker

SUCCESS = RunSignal.ENDED_SUCCESS
FAILURE = RunSignal.ENDED_FAILURE
ERRED = RunSignal.ERRED


class UpdateLog:
    """Records every (folder, status) transition reported by a scheduler."""

    def __init__(self) -> None:
        self.events: list[tuple[str, TestStatus]] = []
        self.running = 0
        self.max_running = 0

    def __call__(self, test: SchedulableTestPort, status: TestStatus) -> None:
        self.events.append((test.folder, status))
        if status is TestStatus.RUNNING:
            self.running += 1
            self.max_running = max(self.max_running, self.running)
        elif status in {TestStatus.SUCCESS, TestStatus.FAILURE, TestStatus.ERROR}:
            self.running -= 1

    def for_test(self, folder: str) -> list[TestStatus]:
        return [status for name, status in self.events if name == folder]

    def folders(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def log() -> UpdateLog:
    return UpdateLog()


@pytest.mark.asyncio
async def test_exhausted_matrix_is_done_without_install(log: UpdateLog) -> None:
    test = FakeSchedulableTest("empty")
    scheduler = TestScheduler(on_update=log)

    result = await scheduler.drain([test])

    assert log.for_test("empty") == [TestStatus.DONE]
    assert result.failures == ()
    assert result.statuses["empty"] is TestStatus.DONE


@pytest.mark.asyncio
async def test_install_transitions_in_order(log: UpdateLog) -> None:
    test = FakeSchedulableTest.with_signals("pkg", [SUCCESS], needs_install=True)
    scheduler = TestScheduler(on_update=log)

    await scheduler.drain([test])

    assert log.for_test("pkg") == [
        TestStatus.WAITING,
        TestStatus.INSTALLING,
        TestStatus.RUNNING,
        TestStatus.SUCCESS,
        TestStatus.DONE,
    ]


@pytest.mark.asyncio
async def test_run_without_install_still_handshakes(log: UpdateLog) -> None:
    test_run = FakeTestRun(run_signal=SUCCESS)
    test = FakeSchedulableTest("pkg", [test_run])
    scheduler = TestScheduler(on_update=log)

    await scheduler.drain([test])

    assert test_run.advance_count == 2
    assert log.for_test("pkg") == [TestStatus.RUNNING, TestStatus.SUCCESS, TestStatus.DONE]


@pytest.mark.asyncio
async def test_failed_run_is_terminal(log: UpdateLog) -> None:
    test = FakeSchedulableTest.with_signals("pkg", [SUCCESS, FAILURE, SUCCESS])
    scheduler = TestScheduler(on_update=log)

    result = await scheduler.drain([test])

    assert result.failures == (test,)
    assert test.run_count == 2
    assert log.for_test("pkg")[-1] is TestStatus.FAILURE
    assert result.statuses["pkg"] is TestStatus.FAILURE


@pytest.mark.asyncio
async def test_erroring_run_is_terminal(log: UpdateLog) -> None:
    test = FakeSchedulableTest.with_signals("pkg", [ERRED, SUCCESS])
    scheduler = TestScheduler(on_update=log)

    result = await scheduler.drain([test])

    assert result.failures == (test,)
    assert test.run_count == 1
    assert log.for_test("pkg") == [TestStatus.RUNNING, TestStatus.ERROR]


@pytest.mark.asyncio
async def test_install_error_skips_run_phase(log: UpdateLog) -> None:
    test_run = FakeTestRun(needs_install=True, install_signal=ERRED)
    test = FakeSchedulableTest("pkg", [test_run])
    scheduler = TestScheduler(on_update=log)

    result = await scheduler.drain([test])

    assert result.failures == (test,)
    assert test_run.advance_count == 1
    assert log.for_test("pkg") == [
        TestStatus.WAITING,
        TestStatus.INSTALLING,
        TestStatus.ERROR,
    ]


@pytest.mark.asyncio
async def test_largest_matrix_runs_first(log: UpdateLog) -> None:
    small = FakeSchedulableTest.with_signals("small", [SUCCESS])
    large = FakeSchedulableTest.with_signals("large", [SUCCESS, SUCCESS, SUCCESS])
    scheduler = TestScheduler(limit=1, install_limit=1, on_update=log)

    await scheduler.drain([small, large])

    assert log.events[0] == ("large", TestStatus.RUNNING)
    first_small = log.folders().index("small")
    assert log.folders()[:first_small] == ["large"] * 7


def test_order_is_stable_for_equal_sizes() -> None:
    tests = [
        FakeSchedulableTest("a", matrix_size=2),
        FakeSchedulableTest("b", matrix_size=5),
        FakeSchedulableTest("c", matrix_size=2),
    ]
    assert [t.folder for t in TestScheduler.order(tests)] == ["b", "a", "c"]


@pytest.mark.asyncio
async def test_successful_test_preempts_fresh_tests(log: UpdateLog) -> None:
    """A succeeding test goes back to the front of the run queue."""
    first = FakeSchedulableTest.with_signals("first", [SUCCESS] * 4)
    second = FakeSchedulableTest.with_signals("second", [SUCCESS])
    third = FakeSchedulableTest.with_signals("third", [SUCCESS])
    scheduler = TestScheduler(limit=1, on_update=log)

    await scheduler.drain([first, second, third])

    folders = log.folders()
    assert folders[: len(log.for_test("first"))] == ["first"] * 9
    assert log.for_test("first")[-1] is TestStatus.DONE
    assert folders.index("second") < folders.index("third")


@pytest.mark.asyncio
async def test_run_limit_bounds_concurrent_runs(log: UpdateLog) -> None:
    tests = [
        FakeSchedulableTest.with_signals(f"t{i}", [SUCCESS], delay=0.02)
        for i in range(5)
    ]
    scheduler = TestScheduler(limit=2, install_limit=2, on_update=log)

    await scheduler.drain(tests)

    assert log.max_running == 2


@pytest.mark.asyncio
async def test_install_limit_bounds_concurrent_installs(log: UpdateLog) -> None:
    tracker = InstallTracker()
    tests = [
        FakeSchedulableTest.with_signals(
            f"t{i}", [SUCCESS], needs_install=True, delay=0.01, tracker=tracker
        )
        for i in range(4)
    ]
    scheduler = TestScheduler(limit=4, install_limit=1, on_update=log)

    await scheduler.drain(tests)

    assert tracker.installs == 4
    assert tracker.max_in_flight == 1
    for i in range(4):
        assert log.for_test(f"t{i}")[:3] == [
            TestStatus.WAITING,
            TestStatus.INSTALLING,
            TestStatus.RUNNING,
        ]


@pytest.mark.asyncio
async def test_failures_collects_every_failing_test(log: UpdateLog) -> None:
    passing = FakeSchedulableTest.with_signals("passing", [SUCCESS, SUCCESS])
    failing = FakeSchedulableTest.with_signals("failing", [SUCCESS, FAILURE])
    erroring = FakeSchedulableTest.with_signals("erroring", [ERRED])
    scheduler = TestScheduler(limit=3, install_limit=1, on_update=log)

    result = await scheduler.drain([passing, failing, erroring])

    assert sorted(t.folder for t in result.failures) == ["erroring", "failing"]
    assert len(result.failures) == 2
    assert result.statuses == {
        "passing": TestStatus.DONE,
        "failing": TestStatus.FAILURE,
        "erroring": TestStatus.ERROR,
    }


@pytest.mark.asyncio
async def test_collaborator_exception_propagates() -> None:
    class ExplodingTest(FakeSchedulableTest):
        def run(self) -> FakeTestRun | None:
            raise RuntimeError("matrix broke")

    slow = FakeSchedulableTest.with_signals("slow", [SUCCESS], delay=0.05)
    scheduler = TestScheduler(limit=2)

    with pytest.raises(RuntimeError, match="matrix broke"):
        await scheduler.drain([slow, ExplodingTest("boom", matrix_size=0)])


@pytest.mark.asyncio
async def test_raising_run_errs_without_aborting_siblings(log: UpdateLog) -> None:
    class ExplodingRun(FakeTestRun):
        async def advance(self) -> RunSignal:
            raise OSError("disk full")

    sibling = FakeSchedulableTest.with_signals("sibling", [SUCCESS, SUCCESS], delay=0.01)
    exploding = FakeSchedulableTest("exploding", [ExplodingRun()])
    scheduler = TestScheduler(limit=2, on_update=log)

    result = await scheduler.drain([sibling, exploding])

    assert [t.folder for t in result.failures] == ["exploding"]
    assert result.statuses["exploding"] is TestStatus.ERROR
    assert result.statuses["sibling"] is TestStatus.DONE
    assert log.for_test("sibling").count(TestStatus.SUCCESS) == 2


@pytest.mark.asyncio
async def test_rejects_tests_sharing_a_folder() -> None:
    first = FakeSchedulableTest.with_signals("app", [SUCCESS])
    second = FakeSchedulableTest.with_signals("app", [FAILURE])

    with pytest.raises(ValueError, match="distinct folders"):
        await TestScheduler().drain([first, second])

    assert first.run_count == 0
    assert second.run_count == 0


def test_rejects_invalid_limits() -> None:
    with pytest.raises(ValueError):
        TestScheduler(limit=0)
    with pytest.raises(ValueError):
        TestScheduler(install_limit=0)
