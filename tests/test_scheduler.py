"""Tests for the tick and debounced-save jobs."""

import asyncio
from unittest.mock import MagicMock

from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from conftest import run
from scheduler import SAVE_JOB_ID, TICK_JOB_ID, TaskScheduler
from storage import Storage
from store import Store


def mock_scheduler():
    scheduler = MagicMock()
    scheduler.add_job = MagicMock()
    scheduler.remove_job = MagicMock()
    return scheduler


class TestWithMockScheduler:
    def test_start_registers_tick(self):
        scheduler = mock_scheduler()
        tasks = TaskScheduler(MagicMock(), MagicMock(), scheduler=scheduler)
        tasks.start()
        assert tasks.running
        scheduler.start.assert_called_once()
        kwargs = scheduler.add_job.call_args.kwargs
        assert kwargs["id"] == TICK_JOB_ID
        assert isinstance(kwargs["trigger"], IntervalTrigger)

    def test_start_twice_is_harmless(self):
        scheduler = mock_scheduler()
        tasks = TaskScheduler(MagicMock(), MagicMock(), scheduler=scheduler)
        tasks.start()
        tasks.start()
        scheduler.start.assert_called_once()

    def test_arm_save_replaces_single_job(self):
        scheduler = mock_scheduler()
        tasks = TaskScheduler(MagicMock(), MagicMock(), scheduler=scheduler)
        tasks.start()
        scheduler.add_job.reset_mock()
        for _ in range(3):
            assert tasks.arm_save()
        assert scheduler.add_job.call_count == 3
        for call in scheduler.add_job.call_args_list:
            assert call.kwargs["id"] == SAVE_JOB_ID
            assert call.kwargs["replace_existing"] is True
            assert isinstance(call.kwargs["trigger"], DateTrigger)

    def test_arm_save_when_stopped(self):
        scheduler = mock_scheduler()
        tasks = TaskScheduler(MagicMock(), MagicMock(), scheduler=scheduler)
        assert tasks.arm_save() is False
        scheduler.add_job.assert_not_called()

    def test_stop_cancels_everything(self):
        scheduler = mock_scheduler()
        tasks = TaskScheduler(MagicMock(), MagicMock(), scheduler=scheduler)
        tasks.start()
        tasks.stop()
        assert not tasks.running
        scheduler.remove_all_jobs.assert_called_once()
        scheduler.shutdown.assert_called_once_with(wait=False)

    def test_cancel_save_without_pending_job(self):
        scheduler = mock_scheduler()
        scheduler.remove_job.side_effect = JobLookupError(SAVE_JOB_ID)
        tasks = TaskScheduler(MagicMock(), MagicMock(), scheduler=scheduler)
        tasks.start()
        tasks.cancel_save()
        scheduler.remove_job.assert_called_once_with(SAVE_JOB_ID)

    def test_jobs_call_back(self):
        on_tick, on_save = MagicMock(), MagicMock()
        tasks = TaskScheduler(on_tick, on_save, scheduler=mock_scheduler())
        run(tasks._run_tick())
        run(tasks._run_save())
        on_tick.assert_called_once_with()
        on_save.assert_called_once_with()

    def test_store_mutations_rearm_save(self, clock, blobs):
        store = Store(storage=Storage(blobs), clock=clock)
        scheduler = mock_scheduler()
        store.tasks = TaskScheduler(store.tick, store.flush, scheduler=scheduler)
        store.start()
        section = store.add_section()
        store.add_card(section.id)
        store.start_timer(section.id, 1, 10)
        save_calls = [c for c in scheduler.add_job.call_args_list if c.kwargs["id"] == SAVE_JOB_ID]
        assert len(save_calls) == 3
        assert blobs.writes == 0
        run(store.tasks._run_save())
        assert blobs.writes == 1


class TestWithEventLoop:
    def test_rapid_mutations_produce_one_write(self, blobs):
        store = Store(storage=Storage(blobs))

        async def scenario():
            store.start()
            try:
                section = store.add_section()
                for _ in range(9):
                    await asyncio.sleep(0.01)
                    store.add_card(section.id)
                await asyncio.sleep(0.9)
            finally:
                store.tasks.stop()

        run(scenario())
        assert blobs.writes == 1
        assert len(Store.open(Storage(blobs)).cards_of_section(1)) == 9

    def test_no_write_before_quiet_period(self, blobs):
        store = Store(storage=Storage(blobs))

        async def scenario():
            store.start()
            try:
                store.add_section()
                await asyncio.sleep(0.1)
                return blobs.writes
            finally:
                store.tasks.stop()

        assert run(scenario()) == 0
        assert store.dirty

    def test_tick_runs_on_interval(self):
        ticks = []

        async def scenario():
            tasks = TaskScheduler(lambda: ticks.append(1), lambda: None, tick_seconds=0.05)
            tasks.start()
            try:
                await asyncio.sleep(0.4)
            finally:
                tasks.stop()

        run(scenario())
        assert len(ticks) >= 2


def test_store_stop_drops_pending_save_and_writes_once(clock, blobs):
    store = Store(storage=Storage(blobs), clock=clock)
    scheduler = mock_scheduler()
    store.tasks = TaskScheduler(store.tick, store.flush, scheduler=scheduler)
    store.start()
    store.add_section()
    store.stop()
    scheduler.remove_job.assert_called_once_with(SAVE_JOB_ID)
    assert blobs.writes == 1
    assert not store.tasks.running
