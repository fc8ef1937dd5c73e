from __future__ import annotations

import json
import os
from typing import Any, Optional

from google.cloud import firestore

from .storage import KeyValueStore


class FirestoreKeyValueStore(KeyValueStore):
    """Key-value store backed by Firestore, one document per key.

    Each document keeps the JSON text under ``value`` so the blob is stored
    exactly as serialized and can be rejected on load if it is corrupt.
    """

    def __init__(
        self,
        *,
        project: Optional[str] = None,
        collection_name: str = "smart_fridge_state",
        client: Optional[firestore.Client] = None,
    ) -> None:
        self._project = project
        self._collection_name = collection_name

        self._firestore_client = client or firestore.Client(project=project)
        self._collection = self._firestore_client.collection(collection_name)

    @classmethod
    def from_env(cls) -> "FirestoreKeyValueStore":
        """Build a store instance from environment variables."""

        project = os.environ.get("GCP_PROJECT")
        collection_name = os.environ.get("SMART_FRIDGE_COLLECTION", "smart_fridge_state")
        return cls(project=project, collection_name=collection_name)

    def get(self, key: str) -> Optional[str]:
        snapshot = self._collection.document(key).get()

        if not snapshot.exists:
            return None

        data = snapshot.to_dict() or {}
        value = data.get("value")
        return value if isinstance(value, str) else None

    def set(self, key: str, value: Any) -> None:
        doc = {
            "value": json.dumps(value, ensure_ascii=False),
            "updated_at": firestore.SERVER_TIMESTAMP,
        }
        self._collection.document(key).set(doc)


__all__ = ["FirestoreKeyValueStore"]
