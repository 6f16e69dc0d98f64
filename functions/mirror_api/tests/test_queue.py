import json
import threading
import time
import unittest
from unittest.mock import MagicMock, patch

from redis import exceptions as redis_exceptions

from mirror_api.queue import InMemoryTriggerQueue, RedisTriggerQueue, SyncTrigger


class SyncTriggerTests(unittest.TestCase):
    def test_decode_accepts_bytes(self):
        trigger = SyncTrigger(job_id="abc", requested_at=12.5)
        self.assertEqual(SyncTrigger.decode(trigger.encode().encode("utf-8")), trigger)

    def test_new_triggers_have_unique_ids(self):
        self.assertNotEqual(SyncTrigger.new().job_id, SyncTrigger.new().job_id)


class InMemoryTriggerQueueTests(unittest.TestCase):
    def test_fifo(self):
        queue = InMemoryTriggerQueue()
        first, second = SyncTrigger("a", 1.0), SyncTrigger("b", 2.0)
        queue.enqueue(first)
        queue.enqueue(second)
        self.assertEqual(queue.dequeue(block=False), first)
        self.assertEqual(queue.dequeue(block=False), second)
        self.assertIsNone(queue.dequeue(block=False))

    def test_blocking_dequeue_times_out(self):
        queue = InMemoryTriggerQueue()
        start = time.monotonic()
        self.assertIsNone(queue.dequeue(block=True, timeout=0.05))
        self.assertGreaterEqual(time.monotonic() - start, 0.05)

    def test_blocking_dequeue_wakes_on_enqueue(self):
        queue = InMemoryTriggerQueue()
        trigger = SyncTrigger("late", 3.0)
        timer = threading.Timer(0.05, queue.enqueue, args=(trigger,))
        timer.start()
        try:
            self.assertEqual(queue.dequeue(block=True, timeout=5), trigger)
        finally:
            timer.cancel()


@patch("mirror_api.queue.redis.Redis.from_url")
class RedisTriggerQueueTests(unittest.TestCase):
    def test_enqueue_pushes_encoded_trigger(self, from_url):
        client = MagicMock()
        from_url.return_value = client
        queue = RedisTriggerQueue(url="redis://localhost:6379/0", queue_key="k")

        queue.enqueue(SyncTrigger("job-1", 5.0))

        key, raw = client.rpush.call_args.args
        self.assertEqual(key, "k")
        self.assertEqual(json.loads(raw), {"job_id": "job-1", "requested_at": 5.0})

    def test_blocking_dequeue(self, from_url):
        client = MagicMock()
        client.blpop.return_value = (b"k", SyncTrigger("job-2", 6.0).encode().encode())
        from_url.return_value = client
        queue = RedisTriggerQueue(url="redis://localhost:6379/0", queue_key="k")

        trigger = queue.dequeue(block=True, timeout=5)

        self.assertEqual(trigger, SyncTrigger("job-2", 6.0))
        client.blpop.assert_called_once_with("k", timeout=5)

    def test_timeout_returns_none(self, from_url):
        client = MagicMock()
        client.blpop.return_value = None
        from_url.return_value = client
        queue = RedisTriggerQueue(url="redis://localhost:6379/0")
        self.assertIsNone(queue.dequeue(block=True, timeout=1))

    def test_connection_error_reconnects(self, from_url):
        broken = MagicMock()
        broken.lpop.side_effect = redis_exceptions.ConnectionError("reset")
        fresh = MagicMock()
        from_url.side_effect = [broken, fresh]
        queue = RedisTriggerQueue(url="redis://localhost:6379/0")

        self.assertIsNone(queue.dequeue(block=False))
        self.assertIs(queue.client, fresh)

    def test_malformed_message_is_dropped(self, from_url):
        client = MagicMock()
        client.lpop.return_value = b"not json"
        from_url.return_value = client
        queue = RedisTriggerQueue(url="redis://localhost:6379/0")
        self.assertIsNone(queue.dequeue(block=False))


if __name__ == "__main__":
    unittest.main()
