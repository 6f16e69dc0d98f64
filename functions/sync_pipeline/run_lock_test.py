import unittest

from mirror_api.store import InMemoryRecordStore
from shared.errors import SyncSkipped
from sync_pipeline.run_lock import RunLock


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class RunLockTest(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryRecordStore()
        self.clock = FakeClock()
        self.lock = RunLock(self.store, lease_seconds=60, clock=self.clock)

    def test_acquire_writes_lease_record(self):
        lease = self.lock.acquire("run-a")
        self.assertEqual(lease.expires_at, 1060.0)
        record = self.store.get("_sync", "lock")
        self.assertEqual(record["owner"], "run-a")
        self.assertEqual(record["expiresAt"], 1060.0)

    def test_second_owner_is_refused_while_lease_is_live(self):
        self.lock.acquire("run-a")
        self.clock.now = 1059.0
        with self.assertRaises(SyncSkipped) as ctx:
            self.lock.acquire("run-b")
        self.assertEqual(ctx.exception.owner, "run-a")

    def test_expired_lease_can_be_taken_over(self):
        self.lock.acquire("run-a")
        self.clock.now = 1060.0
        lease = self.lock.acquire("run-b")
        self.assertEqual(lease.owner, "run-b")
        self.assertEqual(self.lock.current().owner, "run-b")

    def test_release_only_by_owner(self):
        self.lock.acquire("run-a")
        self.lock.release("run-b")
        self.assertEqual(self.lock.current().owner, "run-a")
        self.lock.release("run-a")
        self.assertIsNone(self.lock.current())

    def test_held_releases_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.lock.held("run-a"):
                raise RuntimeError("boom")
        self.assertIsNone(self.lock.current())


if __name__ == "__main__":
    unittest.main()
