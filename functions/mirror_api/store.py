"""
Document store abstraction for Firestore and an in-memory test double.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions
from google.auth import exceptions as auth_exceptions

from shared.errors import StoreFault

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Named records grouped by namespace (a Firestore collection)."""

    def get(self, namespace: str, name: str) -> Optional[dict]:
        ...

    def set(self, namespace: str, name: str, payload: dict, *, merge: bool = False) -> None:
        ...

    def delete(self, namespace: str, name: str) -> None:
        ...


def _deep_merge(target: dict, updates: dict) -> None:
    """Nested maps merge key by key, as Firestore does for merge writes."""
    for key, value in updates.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _deep_merge(current, value)
        else:
            target[key] = value


@dataclass
class InMemoryRecordStore:
    """Test double for Firestore interactions."""

    records: dict = field(default_factory=dict)

    def get(self, namespace: str, name: str) -> Optional[dict]:
        stored = self.records.get((namespace, name))
        if stored is None:
            return None
        return json.loads(json.dumps(stored))

    def set(self, namespace: str, name: str, payload: dict, *, merge: bool = False) -> None:
        # Use a JSON round trip to mimic what survives a real write
        payload = json.loads(json.dumps(payload, default=str))
        existing = self.records.get((namespace, name))
        if merge and existing is not None:
            _deep_merge(existing, payload)
            return
        self.records[(namespace, name)] = payload

    def delete(self, namespace: str, name: str) -> None:
        self.records.pop((namespace, name), None)

    def names(self, namespace: str) -> list[str]:
        return sorted(name for ns, name in self.records if ns == namespace)

    def reset(self) -> None:
        """Clear all stored records (useful in tests)."""
        self.records.clear()


def initialize_firebase(
    credentials_path: Optional[str] = None, project_id: Optional[str] = None
) -> firebase_admin.App:
    """
    Initialize the default Firebase app once per process.

    Falls back to application default credentials when no service account
    file is configured.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if credentials_path:
        cred = credentials.Certificate(credentials_path)
    else:
        cred = credentials.ApplicationDefault()
    options = {"projectId": project_id} if project_id else None
    logger.info("Initializing Firebase app (project=%s)", project_id or "default")
    return firebase_admin.initialize_app(cred, options)


class FirestoreRecordStore:
    """Firestore-backed implementation. Wraps API and auth errors as StoreFault."""

    def __init__(self, client=None):
        self._client = client or firestore.client()

    def _document(self, namespace: str, name: str):
        return self._client.collection(namespace).document(name)

    def get(self, namespace: str, name: str) -> Optional[dict]:
        try:
            snapshot = self._document(namespace, name).get()
        except (exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as exc:
            raise StoreFault(f"Failed to read {namespace}/{name}: {exc}") from exc
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def set(self, namespace: str, name: str, payload: dict, *, merge: bool = False) -> None:
        try:
            self._document(namespace, name).set(payload, merge=merge)
        except (exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as exc:
            raise StoreFault(f"Failed to write {namespace}/{name}: {exc}") from exc

    def delete(self, namespace: str, name: str) -> None:
        try:
            self._document(namespace, name).delete()
        except (exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as exc:
            raise StoreFault(f"Failed to delete {namespace}/{name}: {exc}") from exc
