"""
Mock data store management.

Provides a JSON document store holding named collections of records
(users, RFQs, quotes, promotions, products, maintenance tasks). The store
lives in memory and is optionally persisted to a JSON file, standing in
for the browser local storage the marketplace front-end used.
"""

import copy
import json
import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Global store instance
_data_store: Optional["MockDataStore"] = None


class MockDataStore:
    """
    Named collections of JSON-compatible records.

    Records are plain dicts. Reads return deep copies so callers cannot
    mutate stored state without going through put()/upsert(). When
    file-backed, every mutation is written through to the file.
    """

    def __init__(self, path: Optional[str] = None):
        """
        Initialize the store.

        Args:
            path: Optional JSON file to load from and persist to. When None
                the store is purely in-memory.
        """
        self.path = Path(path) if path else None
        self._collections: Dict[str, List[Dict[str, Any]]] = {}

        if self.path and self.path.exists():
            self._load()

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load mock data from {self.path}: {e}")
            raise

        if not isinstance(data, dict):
            raise ValueError(f"Mock data file {self.path} must contain a JSON object")

        self._collections = {name: list(records) for name, records in data.items()}
        logger.info(
            f"Loaded {sum(len(r) for r in self._collections.values())} records "
            f"in {len(self._collections)} collections from {self.path}"
        )

    def flush(self) -> None:
        """Write all collections to the backing file (no-op when in-memory)."""
        if self.path is None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._collections, f, indent=2, default=str)

    def collections(self) -> List[str]:
        return sorted(self._collections.keys())

    def get(self, name: str) -> List[Dict[str, Any]]:
        """Return a copy of every record in a collection (empty if unknown)."""
        return copy.deepcopy(self._collections.get(name, []))

    def find(self, name: str, value: Any, key: str = "id") -> Optional[Dict[str, Any]]:
        for record in self._collections.get(name, []):
            if record.get(key) == value:
                return copy.deepcopy(record)
        return None

    def put(self, name: str, records: List[Dict[str, Any]]) -> None:
        """Replace a collection's contents."""
        self._collections[name] = copy.deepcopy(list(records))
        self.flush()

    def upsert(self, name: str, record: Dict[str, Any], key: str = "id") -> Dict[str, Any]:
        """
        Insert a record, or replace the existing record with the same key.

        Args:
            name: Collection name
            record: Record to store; must contain `key`
            key: Field identifying the record

        Returns:
            The stored record

        Raises:
            ValueError: If the record has no value for `key`
        """
        if record.get(key) is None:
            raise ValueError(f"Record for collection '{name}' is missing '{key}'")

        records = self._collections.setdefault(name, [])
        stored = copy.deepcopy(record)

        for i, existing in enumerate(records):
            if existing.get(key) == record[key]:
                records[i] = stored
                break
        else:
            records.append(stored)

        self.flush()
        return copy.deepcopy(stored)

    def clear(self, name: Optional[str] = None) -> None:
        """Remove one collection, or every collection when name is None."""
        if name is None:
            self._collections = {}
        else:
            self._collections.pop(name, None)
        self.flush()


def init_data_store(path: Optional[str] = None) -> "MockDataStore":
    """
    Initialize the global data store.

    Args:
        path: JSON file to persist to (defaults to MOCK_DATA_PATH env var,
            in-memory when neither is set)

    Returns:
        The initialized store
    """
    global _data_store

    if _data_store is not None:
        logger.warning("Data store already initialized")
        return _data_store

    store_path = path or os.getenv("MOCK_DATA_PATH") or None
    _data_store = MockDataStore(store_path)
    logger.info(
        f"Mock data store initialized ({'file: ' + store_path if store_path else 'in-memory'})"
    )
    return _data_store


def close_data_store() -> None:
    """Flush and drop the global data store."""
    global _data_store

    if _data_store is not None:
        _data_store.flush()
        _data_store = None
        logger.info("Mock data store closed")


def get_data_store() -> "MockDataStore":
    """Return the global store, initializing it on first use."""
    if _data_store is None:
        return init_data_store()
    return _data_store


def health_check() -> bool:
    """
    Check that the data store is usable.

    Returns:
        True if the store can be read (and written, when file-backed)
    """
    try:
        store = get_data_store()
        store.collections()
        store.flush()
        return True
    except (OSError, ValueError) as e:
        logger.error(f"Data store health check failed: {e}")
        return False
