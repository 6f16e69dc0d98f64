import unittest
from unittest.mock import MagicMock, patch

from mirror_api.config import Settings
from mirror_api.queue import InMemoryTriggerQueue, SyncTrigger
from mirror_api.store import InMemoryRecordStore
from shared.errors import SyncSkipped
from shared.types import SyncResult, SyncStatus, SyncType
from sync_pipeline import worker
from sync_pipeline.run_lock import RunLock


def _result(run_id="r", status=SyncStatus.COMPLETE):
    return SyncResult(run_id=run_id, status=status)


class WorkerTests(unittest.TestCase):
    def setUp(self):
        self.orchestrator = MagicMock()
        self.orchestrator.run.return_value = _result()
        self.queue = InMemoryTriggerQueue()

    def test_build_orchestrator_uses_settings(self):
        settings = Settings(
            use_in_memory_backends=True,
            chunk_threshold_bytes=1234,
            clans_max_pages=4,
            sync_lock_lease_seconds=99,
        )
        store = InMemoryRecordStore()
        orchestrator = worker.build_orchestrator(
            settings=settings, store=store, fetcher=MagicMock()
        )
        self.assertEqual(orchestrator.config.threshold, 1234)
        self.assertEqual(orchestrator.config.clans_max_pages, 4)
        self.assertIsInstance(orchestrator.lock, RunLock)
        self.assertEqual(orchestrator.lock.lease_seconds, 99)
        self.assertIs(orchestrator.store, store)

    def test_process_next_runs_manual_sync_for_trigger(self):
        self.queue.enqueue(SyncTrigger(job_id="job-1", requested_at=1.0))
        processed = worker.process_next(
            orchestrator=self.orchestrator, queue=self.queue, block=False
        )
        self.assertTrue(processed)
        self.orchestrator.run.assert_called_once_with(SyncType.MANUAL, run_id="job-1")

    def test_process_next_no_triggers(self):
        processed = worker.process_next(
            orchestrator=self.orchestrator, queue=self.queue, block=False
        )
        self.assertFalse(processed)
        self.orchestrator.run.assert_not_called()

    def test_run_sync_swallows_lock_contention(self):
        self.orchestrator.run.side_effect = SyncSkipped("other", 2000.0)
        self.assertIsNone(worker.run_sync(self.orchestrator, SyncType.SCHEDULED))

    @patch("sync_pipeline.worker.get_settings")
    def test_run_loop_runs_schedule_then_serves_triggers(self, mock_settings):
        mock_settings.return_value = Settings(use_in_memory_backends=True)
        now = [0.0]
        waits = []

        class ClockedQueue(InMemoryTriggerQueue):
            """Advances the fake clock by the wait instead of blocking."""

            def dequeue(self, *, block=True, timeout=None):
                waits.append(timeout)
                trigger = super().dequeue(block=False)
                if trigger is None:
                    now[0] += timeout
                return trigger

        self.queue = ClockedQueue()
        self.queue.enqueue(SyncTrigger(job_id="manual-1", requested_at=0.0))
        worker.run_loop(
            orchestrator=self.orchestrator,
            queue=self.queue,
            interval_seconds=100,
            jitter_seconds=0,
            max_iterations=3,
            clock=lambda: now[0],
        )

        calls = self.orchestrator.run.call_args_list
        self.assertEqual(calls[0].args, (SyncType.SCHEDULED,))
        self.assertEqual(calls[1].args, (SyncType.MANUAL,))
        self.assertEqual(calls[1].kwargs, {"run_id": "manual-1"})
        self.assertEqual(len(calls), 2)
        self.assertEqual(waits, [60, 60])

    @patch("sync_pipeline.worker.get_settings")
    def test_run_loop_survives_crashing_sync(self, mock_settings):
        mock_settings.return_value = Settings(use_in_memory_backends=True)
        self.orchestrator.run.side_effect = RuntimeError("store down")
        worker.run_loop(
            orchestrator=self.orchestrator,
            queue=self.queue,
            interval_seconds=0,
            jitter_seconds=0,
            max_iterations=2,
            clock=lambda: 0.0,
        )
        self.assertEqual(self.orchestrator.run.call_count, 2)


if __name__ == "__main__":
    unittest.main()
