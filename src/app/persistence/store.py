"""Keyed document stores backing plans, bins and collection events.

Every document carries a string ``id`` built from its natural key, so writes
are upserts and retried writes land on the same record.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Protocol

import httpx

from ..config import settings
from ..db.supabase import get_supabase_client
from ..exceptions import StoreError
from .filesystem import FileStorage, document_filename

logger = logging.getLogger(__name__)

PLANS = "route_plans"
BINS = "waste_bins"
EVENTS = "collection_events"


class DocumentStore(Protocol):
    def upsert(self, collection: str, document_id: str, document: dict[str, Any]) -> dict[str, Any]: ...

    def get(self, collection: str, document_id: str) -> dict[str, Any] | None: ...

    def find(self, collection: str, **filters: Any) -> list[dict[str, Any]]: ...


def _matches(document: dict[str, Any], filters: dict[str, Any]) -> bool:
    return all(document.get(field) == value for field, value in filters.items())


class FileDocumentStore:
    """One JSON file per document under ``<data_root>/documents/<collection>/``."""

    def __init__(self, root: Path | None = None, storage: FileStorage | None = None) -> None:
        self.storage = storage or FileStorage(root=root)

    def _path(self, collection: str, document_id: str) -> Path:
        return self.storage.collection_directory(collection) / document_filename(document_id)

    def upsert(self, collection: str, document_id: str, document: dict[str, Any]) -> dict[str, Any]:
        payload = {**document, "id": document_id}
        try:
            self.storage.write_json(self._path(collection, document_id), payload)
        except OSError as exc:
            raise StoreError(f"Failed to write {collection}/{document_id}: {exc}") from exc
        return payload

    def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        try:
            return self.storage.read_json(self._path(collection, document_id))
        except (OSError, ValueError) as exc:
            raise StoreError(f"Failed to read {collection}/{document_id}: {exc}") from exc

    def find(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        directory = self.storage.collection_directory(collection)
        try:
            return [document for document in self.storage.iter_json(directory) if _matches(document, filters)]
        except (OSError, ValueError) as exc:
            raise StoreError(f"Failed to query {collection}: {exc}") from exc


class SupabaseDocumentStore:
    """Supabase tables keyed by a text ``id`` primary key."""

    def __init__(self, client: Any, max_retries: int | None = None, backoff_seconds: float | None = None) -> None:
        self.client = client
        self.max_retries = max_retries if max_retries is not None else settings.store_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.store_backoff_seconds

    def _execute(self, description: str, build_query):
        attempt = 0
        while True:
            try:
                return build_query().execute()
            except (httpx.TransportError, OSError) as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise StoreError(f"{description} failed after {self.max_retries} retries: {exc}") from exc
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug(f"{description} failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                time.sleep(wait_time)
            except Exception as exc:
                raise StoreError(f"{description} failed: {exc}") from exc

    def upsert(self, collection: str, document_id: str, document: dict[str, Any]) -> dict[str, Any]:
        payload = {**document, "id": document_id}
        response = self._execute(
            f"Upsert {collection}/{document_id}",
            lambda: self.client.table(collection).upsert(payload, on_conflict="id"),
        )
        rows = response.data or []
        return rows[0] if rows else payload

    def get(self, collection: str, document_id: str) -> dict[str, Any] | None:
        response = self._execute(
            f"Get {collection}/{document_id}",
            lambda: self.client.table(collection).select("*").eq("id", document_id).limit(1),
        )
        rows = response.data or []
        return rows[0] if rows else None

    def find(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        def build_query():
            query = self.client.table(collection).select("*")
            for field, value in filters.items():
                query = query.is_(field, "null") if value is None else query.eq(field, value)
            return query

        response = self._execute(f"Query {collection}", build_query)
        return list(response.data or [])


def get_document_store() -> DocumentStore:
    """Supabase when configured, otherwise JSON files under the data root."""
    client = get_supabase_client()
    if client is not None:
        return SupabaseDocumentStore(client)
    return FileDocumentStore()
