import unittest
from unittest.mock import MagicMock

from google.api_core import exceptions
from google.auth import exceptions as auth_exceptions

from mirror_api.store import FirestoreRecordStore, InMemoryRecordStore
from shared.errors import StoreFault


class InMemoryRecordStoreTests(unittest.TestCase):
    def test_set_get_roundtrip_is_a_copy(self):
        store = InMemoryRecordStore()
        payload = {"data": [1, 2]}
        store.set("api_data", "x", payload)
        payload["data"].append(3)
        loaded = store.get("api_data", "x")
        loaded["data"].append(4)
        self.assertEqual(store.get("api_data", "x"), {"data": [1, 2]})

    def test_merge_keeps_existing_fields(self):
        store = InMemoryRecordStore()
        store.set("_sync", "metadata", {"status": "in-progress", "startTime": 1})
        store.set("_sync", "metadata", {"status": "complete"}, merge=True)
        self.assertEqual(
            store.get("_sync", "metadata"), {"status": "complete", "startTime": 1}
        )

    def test_merge_is_deep_for_nested_maps(self):
        store = InMemoryRecordStore()
        store.set(
            "api_data",
            "clans_all",
            {"metadata": {"chunkCount": 3, "kind": "sequence"}, "status": "ok"},
        )
        store.set("api_data", "clans_all", {"metadata": {"chunkCount": 4}}, merge=True)
        self.assertEqual(
            store.get("api_data", "clans_all"),
            {"metadata": {"chunkCount": 4, "kind": "sequence"}, "status": "ok"},
        )

    def test_overwrite_without_merge(self):
        store = InMemoryRecordStore()
        store.set("api_data", "x", {"a": 1})
        store.set("api_data", "x", {"b": 2})
        self.assertEqual(store.get("api_data", "x"), {"b": 2})

    def test_names_and_delete(self):
        store = InMemoryRecordStore()
        store.set("api_data", "b", {})
        store.set("api_data", "a", {})
        store.set("_sync", "metadata", {})
        self.assertEqual(store.names("api_data"), ["a", "b"])
        store.delete("api_data", "a")
        store.delete("api_data", "missing")
        self.assertEqual(store.names("api_data"), ["b"])


class FirestoreRecordStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.document = self.client.collection.return_value.document.return_value
        self.store = FirestoreRecordStore(client=self.client)

    def test_get_existing_document(self):
        snapshot = MagicMock(exists=True)
        snapshot.to_dict.return_value = {"data": [1]}
        self.document.get.return_value = snapshot

        self.assertEqual(self.store.get("api_data", "rap_data"), {"data": [1]})
        self.client.collection.assert_called_with("api_data")
        self.client.collection.return_value.document.assert_called_with("rap_data")

    def test_get_missing_document(self):
        self.document.get.return_value = MagicMock(exists=False)
        self.assertIsNone(self.store.get("api_data", "rap_data"))

    def test_set_passes_merge_flag(self):
        self.store.set("_sync", "metadata", {"status": "complete"}, merge=True)
        self.document.set.assert_called_once_with({"status": "complete"}, merge=True)

    def test_api_errors_become_store_faults(self):
        self.document.get.side_effect = exceptions.ServiceUnavailable("unavailable")
        with self.assertRaises(StoreFault):
            self.store.get("api_data", "rap_data")

        self.document.set.side_effect = exceptions.DeadlineExceeded("slow")
        with self.assertRaises(StoreFault):
            self.store.set("api_data", "rap_data", {})

        self.document.delete.side_effect = exceptions.PermissionDenied("nope")
        with self.assertRaises(StoreFault):
            self.store.delete("_sync", "lock")

    def test_auth_errors_become_store_faults(self):
        self.document.get.side_effect = auth_exceptions.RefreshError("token expired")
        with self.assertRaises(StoreFault):
            self.store.get("api_data", "rap_data")

        self.document.set.side_effect = auth_exceptions.TransportError("reset")
        with self.assertRaises(StoreFault):
            self.store.set("api_data", "rap_data", {})


if __name__ == "__main__":
    unittest.main()
