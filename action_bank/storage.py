"""
Storage Backend Module

Provides an async record-store interface and two implementations: in-memory
(testing) and flat JSON files (one document per collection). Records are
plain JSON-compatible dicts keyed by their "id" field.
"""

import asyncio
import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .logging_config import get_logger


logger = get_logger(__name__)


def _copy(record: Dict[str, Any]) -> Dict[str, Any]:
    # Deep copy to prevent external mutation
    return json.loads(json.dumps(record, default=str))


def _matches(record: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for key, value in filters.items():
        if key not in record or record[key] != value:
            return False
    return True


class StorageInterface(ABC):
    """Abstract interface for async storage backends"""

    async def initialize(self) -> None:
        """Prepare the backend (default no-op)"""
        pass

    @abstractmethod
    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Insert or replace a record"""
        pass

    @abstractmethod
    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record, or None when absent"""
        pass

    @abstractmethod
    async def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table in insertion order"""
        pass

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> bool:
        """Delete a record; False when it did not exist"""
        pass

    @abstractmethod
    async def delete_many(self, table: str, record_ids: List[str]) -> int:
        """Delete several records with a single persist; returns how many existed"""
        pass

    @abstractmethod
    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records whose fields equal every filter value"""
        pass

    @abstractmethod
    async def count(self, table: str) -> int:
        """Count records in table"""
        pass

    async def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        return await self.load(table, record_id) is not None

    @abstractmethod
    async def clear_table(self, table: str) -> None:
        """Remove all records from a table"""
        pass

    async def close(self) -> None:
        """Release resources (default no-op)"""
        pass


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(table, {})

    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        self._table(table)[record_id] = _copy(data)

    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        record = self._table(table).get(record_id)
        return _copy(record) if record is not None else None

    async def load_all(self, table: str) -> List[Dict[str, Any]]:
        return [_copy(record) for record in self._table(table).values()]

    async def delete(self, table: str, record_id: str) -> bool:
        return self._table(table).pop(record_id, None) is not None

    async def delete_many(self, table: str, record_ids: List[str]) -> int:
        rows = self._table(table)
        return sum(1 for record_id in record_ids if rows.pop(record_id, None) is not None)

    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [_copy(r) for r in self._table(table).values() if _matches(r, filters)]

    async def count(self, table: str) -> int:
        return len(self._table(table))

    async def clear_table(self, table: str) -> None:
        self._data[table] = {}


@dataclass
class _TableWriter:
    """Write serialization state for one backing file"""
    lock: asyncio.Lock
    pending: Optional[asyncio.Future] = None


class JSONFileStorage(StorageInterface):
    """
    Flat-file storage: each table lives in ``<data_location>/<table>.json`` as
    a JSON array of records, held in memory and rewritten on every mutation.

    Writes to one file never interleave. A write requested while another is
    in flight is deferred, and any number of deferred requests collapse into
    a single rewrite once the current one finishes; every caller awaits the
    write that covers its mutation. A crash between the in-memory change and
    the rewrite loses that change.
    """

    def __init__(self, data_location: Union[str, Path] = "./data/"):
        self.data_location = Path(data_location)
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._writers: Dict[str, _TableWriter] = {}

    async def initialize(self) -> None:
        """Create the data directory and load every existing collection file"""
        await asyncio.to_thread(self.data_location.mkdir, parents=True, exist_ok=True)
        for path in sorted(self.data_location.glob("*.json")):
            await self._ensure_table(path.stem)

    def _path(self, table: str) -> Path:
        return self.data_location / f"{table}.json"

    def _read_file(self, table: str) -> Optional[str]:
        path = self._path(table)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write_file(self, table: str, payload: str) -> None:
        self.data_location.mkdir(parents=True, exist_ok=True)
        path = self._path(table)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, path)

    async def _ensure_table(self, table: str) -> Dict[str, Dict[str, Any]]:
        if table in self._tables:
            return self._tables[table]

        raw_text = await asyncio.to_thread(self._read_file, table)
        rows: Dict[str, Dict[str, Any]] = {}

        if raw_text:
            try:
                document = json.loads(raw_text)
            except json.JSONDecodeError:
                logger.warning("Unreadable collection file, starting empty",
                               extra={'resource': table})
                document = []

            if not isinstance(document, list):
                logger.warning("Collection file is not a JSON array, starting empty",
                               extra={'resource': table})
                document = []

            for entry in document:
                if not isinstance(entry, dict) or not isinstance(entry.get('id'), str):
                    logger.warning("Skipping malformed record", extra={'resource': table})
                    continue
                rows[entry['id']] = entry

        # Another task may have loaded the table while the file was being read
        return self._tables.setdefault(table, rows)

    async def _write_table(self, table: str) -> None:
        payload = json.dumps(list(self._tables.get(table, {}).values()), default=str)
        await asyncio.to_thread(self._write_file, table, payload)

    async def _persist(self, table: str) -> None:
        writer = self._writers.get(table)
        if writer is None:
            writer = self._writers[table] = _TableWriter(lock=asyncio.Lock())

        if writer.lock.locked():
            if writer.pending is None:
                writer.pending = asyncio.get_running_loop().create_future()
                logger.debug("Write in flight, deferring", extra={'resource': table})
            await writer.pending
            return

        async with writer.lock:
            try:
                await self._write_table(table)
            finally:
                await self._drain(writer, table)

    async def _drain(self, writer: _TableWriter, table: str) -> None:
        """Run deferred writes; one rewrite covers every request made meanwhile"""
        while writer.pending is not None:
            waiter, writer.pending = writer.pending, None
            try:
                await self._write_table(table)
            except Exception as exc:
                logger.error("Deferred write failed", extra={'resource': table}, exc_info=True)
                waiter.set_exception(exc)
            else:
                waiter.set_result(None)

    async def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        rows = await self._ensure_table(table)
        rows[record_id] = _copy(data)
        await self._persist(table)

    async def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        rows = await self._ensure_table(table)
        record = rows.get(record_id)
        return _copy(record) if record is not None else None

    async def load_all(self, table: str) -> List[Dict[str, Any]]:
        rows = await self._ensure_table(table)
        return [_copy(record) for record in rows.values()]

    async def delete(self, table: str, record_id: str) -> bool:
        rows = await self._ensure_table(table)
        if rows.pop(record_id, None) is None:
            return False
        await self._persist(table)
        return True

    async def delete_many(self, table: str, record_ids: List[str]) -> int:
        rows = await self._ensure_table(table)
        removed = sum(1 for record_id in record_ids if rows.pop(record_id, None) is not None)
        if removed:
            await self._persist(table)
        return removed

    async def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        rows = await self._ensure_table(table)
        return [_copy(r) for r in rows.values() if _matches(r, filters)]

    async def count(self, table: str) -> int:
        rows = await self._ensure_table(table)
        return len(rows)

    async def clear_table(self, table: str) -> None:
        self._tables[table] = {}
        await self._persist(table)


def create_storage(backend: str, data_location: Union[str, Path] = "./data/") -> StorageInterface:
    """Build a storage backend by name"""
    if backend == "memory":
        return InMemoryStorage()
    if backend == "json":
        return JSONFileStorage(data_location)
    raise ValueError(f"Unknown storage backend: {backend}")
