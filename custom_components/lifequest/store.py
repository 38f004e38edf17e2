# File: store.py
"""Handles persistent document storage for the LifeQuest integration.

Uses Home Assistant's Storage helper to save and load every user's character,
quests, journal and daily-cycle marker, so progression survives restarts.

Documents live in one flat mapping keyed by slash-separated path:
    users/{uid}/character
    users/{uid}/quests/{quest_id}
    users/{uid}/journal/{entry_id}
    users/{uid}/meta/daily_cycle

Every mutation is applied in memory synchronously (no await between the
precondition check and the write), then flushed with a single save. If the
save fails, the touched documents are restored and StoreFailureError raised.
"""

from __future__ import annotations

from collections.abc import Iterable
import copy
from typing import TYPE_CHECKING, Any
import uuid

from homeassistant.helpers.storage import Store

from . import const
from .exceptions import InvalidStateError, NotFoundError, StoreFailureError

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

# (field, operator, value) filter used by async_list_documents
DocumentFilter = tuple[str, str, Any]

# Sentinel for "document did not exist" in rollback snapshots
_MISSING = object()


def document_path(*segments: str) -> str:
    """Join path segments into a document path.

    Example:
        document_path("users", "abc", "quests", "q1") → "users/abc/quests/q1"
    """
    for segment in segments:
        if not segment or const.PATH_SEPARATOR in segment:
            raise ValueError(const.ERROR_INVALID_PATH_FMT.format(segment))
    return const.PATH_SEPARATOR.join(segments)


def user_path(user_id: str, *segments: str) -> str:
    """Build a path scoped under one user."""
    return document_path(const.PATH_USERS, user_id, *segments)


def _matches(document: dict[str, Any], filters: Iterable[DocumentFilter]) -> bool:
    """Check a document against all filters (logical AND)."""
    for field, operator, value in filters:
        actual = document.get(field)
        match operator:
            case const.FILTER_OP_EQ:
                if actual != value:
                    return False
            case const.FILTER_OP_NE:
                if actual == value:
                    return False
            case const.FILTER_OP_IN:
                if actual not in value:
                    return False
            case const.FILTER_OP_NOT_IN:
                if actual in value:
                    return False
            case _:
                raise ValueError(f"Unsupported filter operator '{operator}'")
    return True


class LifeQuestStore:
    """Handles persistent storage operations for LifeQuest documents.

    Thin document-store facade over Home Assistant's Store API. All getters
    return deep copies so callers can never mutate stored state by accident.
    """

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY
    ) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location (default: const.STORAGE_KEY).

        """
        self.hass = hass
        self._storage_key = storage_key
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: dict[str, Any] = self.get_default_structure()

    @staticmethod
    def get_default_structure() -> dict[str, Any]:
        """Return canonical empty data structure for fresh installations."""
        return {
            const.DATA_META: {
                const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION,
            },
            const.DATA_DOCUMENTS: {},
        }

    async def async_initialize(self) -> None:
        """Load data from storage during startup.

        If no data exists, initializes with an empty structure.
        """
        const.LOGGER.debug("DEBUG: LifeQuestStore: Loading data from storage")
        existing_data = await self._store.async_load()

        if existing_data is None:
            const.LOGGER.info("INFO: No existing storage found. Initializing new data")
            self._data = LifeQuestStore.get_default_structure()
            return

        self._data = existing_data
        self._data.setdefault(const.DATA_DOCUMENTS, {})
        self._data.setdefault(
            const.DATA_META, {const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION}
        )
        const.LOGGER.debug(
            "DEBUG: Loaded existing data from storage: %s documents",
            len(self._documents),
        )

    @property
    def data(self) -> dict[str, Any]:
        """Retrieve the in-memory data."""
        return self._data

    @property
    def _documents(self) -> dict[str, dict[str, Any]]:
        return self._data[const.DATA_DOCUMENTS]

    # -------------------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------------------

    async def async_get_document(self, path: str) -> dict[str, Any] | None:
        """Return a copy of the document at path, or None if absent."""
        document = self._documents.get(path)
        return copy.deepcopy(document) if document is not None else None

    async def async_list_documents(
        self, prefix: str, filters: Iterable[DocumentFilter] = ()
    ) -> list[dict[str, Any]]:
        """Return copies of the documents directly inside a collection.

        Only documents exactly one segment below prefix are listed, so
        "users/u1/quests" never returns anything from "users/u1/journal".

        Args:
            prefix: Collection path, e.g. "users/{uid}/quests"
            filters: (field, operator, value) tuples, all of which must match.
                     Operators: ==, !=, in, not in
        """
        filters = list(filters)
        collection = prefix.rstrip(const.PATH_SEPARATOR) + const.PATH_SEPARATOR
        return [
            copy.deepcopy(document)
            for path, document in self._documents.items()
            if path.startswith(collection)
            and const.PATH_SEPARATOR not in path[len(collection) :]
            and _matches(document, filters)
        ]

    # -------------------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------------------

    async def async_set_document(self, path: str, data: dict[str, Any]) -> None:
        """Create or replace the document at path."""
        snapshot = self._snapshot([path])
        self._documents[path] = copy.deepcopy(data)
        await self._async_commit(snapshot)

    async def async_update_document(
        self,
        path: str,
        partial: dict[str, Any],
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Merge fields into an existing document.

        Args:
            path: Document path
            partial: Fields to set (top-level merge)
            expected: Optional precondition - every field listed must still hold
                      the given value, otherwise InvalidStateError is raised and
                      nothing is written (optimistic concurrency)

        Returns:
            Copy of the updated document

        Raises:
            NotFoundError: If the document does not exist
            InvalidStateError: If the precondition does not hold
        """
        self._check_update(path, expected)
        snapshot = self._snapshot([path])
        self._documents[path].update(copy.deepcopy(partial))
        await self._async_commit(snapshot)
        return copy.deepcopy(self._documents[path])

    async def async_batch_update(
        self,
        updates: Iterable[tuple[Any, ...]],
    ) -> None:
        """Apply several partial updates atomically with a single save.

        Each update is (path, partial) or (path, partial, expected). All
        preconditions are checked before anything is written; one failing
        precondition rejects the whole batch.
        """
        normalized: list[tuple[str, dict[str, Any], dict[str, Any] | None]] = []
        for update in updates:
            path, partial, *rest = update
            normalized.append((path, partial, rest[0] if rest else None))

        if not normalized:
            return

        for path, _partial, expected in normalized:
            self._check_update(path, expected)

        snapshot = self._snapshot([path for path, _, _ in normalized])
        for path, partial, _expected in normalized:
            self._documents[path].update(copy.deepcopy(partial))
        await self._async_commit(snapshot)

    async def async_append_document(
        self, collection: str, data: dict[str, Any]
    ) -> str:
        """Add a document with a generated id to a collection.

        Returns:
            The new document id (also stored in the document's "id" field)
        """
        document_id = uuid.uuid4().hex
        path = document_path(*collection.split(const.PATH_SEPARATOR), document_id)
        snapshot = self._snapshot([path])
        self._documents[path] = {**copy.deepcopy(data), const.DATA_ID: document_id}
        await self._async_commit(snapshot)
        return document_id

    async def async_delete_document(self, path: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        if path not in self._documents:
            return False
        snapshot = self._snapshot([path])
        del self._documents[path]
        await self._async_commit(snapshot)
        return True

    async def async_delete_prefix(self, prefix: str) -> int:
        """Delete every document at or below prefix with a single save.

        Returns:
            Number of documents deleted
        """
        root = prefix.rstrip(const.PATH_SEPARATOR)
        paths = [
            path
            for path in self._documents
            if path == root or path.startswith(root + const.PATH_SEPARATOR)
        ]
        if not paths:
            return 0
        snapshot = self._snapshot(paths)
        for path in paths:
            del self._documents[path]
        await self._async_commit(snapshot)
        return len(paths)

    async def async_delete_storage(self) -> None:
        """Delete the storage file completely from disk."""
        self._data = LifeQuestStore.get_default_structure()
        try:
            await self._store.async_remove()
            const.LOGGER.info(
                "INFO: Storage file removed successfully: %s", self._store.path
            )
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to remove storage file %s: %s. Check file permissions",
                self._store.path,
                err,
            )

    # -------------------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------------------

    def _check_update(self, path: str, expected: dict[str, Any] | None) -> None:
        document = self._documents.get(path)
        if document is None:
            raise NotFoundError(const.ERROR_DOCUMENT_NOT_FOUND_FMT.format(path))
        if expected and any(
            document.get(field) != value for field, value in expected.items()
        ):
            const.LOGGER.warning(
                "WARNING: Concurrent modification detected on %s (expected %s)",
                path,
                expected,
            )
            raise InvalidStateError(
                const.ERROR_CONCURRENT_MODIFICATION_FMT.format(path)
            )

    def _snapshot(self, paths: Iterable[str]) -> dict[str, Any]:
        return {
            path: copy.deepcopy(self._documents[path])
            if path in self._documents
            else _MISSING
            for path in paths
        }

    async def _async_commit(self, snapshot: dict[str, Any]) -> None:
        """Save to disk, restoring the snapshotted documents on failure.

        Raises:
            StoreFailureError: If the underlying save fails
        """
        try:
            await self._store.async_save(self._data)
        except (OSError, TypeError, ValueError) as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage (%s documents touched): %s",
                len(snapshot),
                err,
            )
            for path, previous in snapshot.items():
                if previous is _MISSING:
                    self._documents.pop(path, None)
                else:
                    self._documents[path] = previous
            raise StoreFailureError(const.ERROR_STORE_SAVE_FMT.format(err)) from err
        const.LOGGER.debug(
            "DEBUG: Saved %s document change(s) to storage", len(snapshot)
        )
