from __future__ import annotations

import itertools
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from pydantic import ValidationError

from vistaguide.core.errors import StoreCorruptError
from vistaguide.models.domain import Destination
from vistaguide.models.schemas import DestinationSchema

logger = logging.getLogger(__name__)


class EntityStore(Protocol):
    def get(self, entity_id: str) -> Optional[Destination]:
        ...

    def upsert(self, destinations: Iterable[Destination]) -> None:
        ...

    def delete(self, entity_id: str) -> None:
        ...

    def clear(self) -> None:
        ...

    def list(self, limit: int = 50, types: Optional[Sequence[str]] = None) -> List[Destination]:
        ...

    def count(self) -> int:
        ...


class InMemoryEntityStore:
    def __init__(self) -> None:
        self.records: Dict[str, Destination] = {}
        self._cached_at: Dict[str, int] = {}
        self._seq = itertools.count()

    def get(self, entity_id: str) -> Optional[Destination]:
        return self.records.get(entity_id)

    def upsert(self, destinations: Iterable[Destination]) -> None:
        for dest in destinations:
            self.records[dest.id] = dest
            self._cached_at[dest.id] = next(self._seq)

    def delete(self, entity_id: str) -> None:
        self.records.pop(entity_id, None)
        self._cached_at.pop(entity_id, None)

    def clear(self) -> None:
        self.records.clear()
        self._cached_at.clear()

    def list(self, limit: int = 50, types: Optional[Sequence[str]] = None) -> List[Destination]:
        ids = sorted(self.records, key=lambda i: self._cached_at[i], reverse=True)
        out = [self.records[i] for i in ids if not types or self.records[i].type in types]
        return out[:limit]

    def count(self) -> int:
        return len(self.records)


class SQLiteEntityStore:
    """Durable destination store backed by a single SQLite file.

    Each row holds the whole record as JSON, so an upsert always replaces
    the previous copy. Writes go through one lock; readers share the
    connection.
    """

    CREATE_TABLE = """
        CREATE TABLE IF NOT EXISTS destinations (
            id         text PRIMARY KEY,
            type       text NOT NULL,
            provenance text NOT NULL,
            payload    text NOT NULL,
            cached_at  text NOT NULL
        );
        """

    CREATE_INDEX = """
        CREATE INDEX IF NOT EXISTS destinations_cached_at
            ON destinations (cached_at)
        """

    SELECT_ONE = "SELECT payload FROM destinations WHERE id=?"

    UPSERT = """
        INSERT INTO destinations(id, type, provenance, payload, cached_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT (id)
        DO UPDATE SET type = excluded.type,
                      provenance = excluded.provenance,
                      payload = excluded.payload,
                      cached_at = excluded.cached_at
        """

    DELETE_ONE = "DELETE FROM destinations WHERE id=?"

    DELETE_ALL = "DELETE FROM destinations"

    COUNT = "SELECT count(*) FROM destinations"

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._write_lock = threading.RLock()
        try:
            self.connection = sqlite3.connect(db_path, check_same_thread=False)
            self.connection.execute(self.CREATE_TABLE)
            self.connection.execute(self.CREATE_INDEX)
            self.connection.commit()
        except sqlite3.Error as exc:
            logger.exception("Cannot open entity store at %s", db_path)
            raise StoreCorruptError(f"cannot open entity store: {exc}") from exc

    def get(self, entity_id: str) -> Optional[Destination]:
        try:
            row = self.connection.execute(self.SELECT_ONE, (entity_id,)).fetchone()
        except sqlite3.Error as exc:
            logger.error("Entity store read failed for %s: %s", entity_id, exc)
            raise StoreCorruptError(str(exc)) from exc
        if row is None:
            return None
        return self._decode(entity_id, row[0])

    def upsert(self, destinations: Iterable[Destination]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        rows = [
            (
                d.id,
                d.type,
                d.provenance.value,
                DestinationSchema.from_domain(d).model_dump_json(),
                now,
            )
            for d in destinations
        ]
        if not rows:
            return
        with self._write_lock:
            try:
                with self.connection:
                    self.connection.executemany(self.UPSERT, rows)
            except sqlite3.Error as exc:
                logger.error("Entity store write failed: %s", exc)
                raise StoreCorruptError(str(exc)) from exc
        logger.debug("Stored %d destination(s)", len(rows))

    def delete(self, entity_id: str) -> None:
        self._write(self.DELETE_ONE, (entity_id,))

    def clear(self) -> None:
        self._write(self.DELETE_ALL, ())

    def list(self, limit: int = 50, types: Optional[Sequence[str]] = None) -> List[Destination]:
        sql = "SELECT id, payload FROM destinations"
        params: list = []
        if types:
            sql += " WHERE type IN (%s)" % ",".join("?" * len(types))
            params.extend(types)
        sql += " ORDER BY cached_at DESC, rowid DESC LIMIT ?"
        params.append(limit)
        try:
            rows = self.connection.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreCorruptError(str(exc)) from exc
        return [self._decode(entity_id, payload) for entity_id, payload in rows]

    def count(self) -> int:
        try:
            return self.connection.execute(self.COUNT).fetchone()[0]
        except sqlite3.Error as exc:
            raise StoreCorruptError(str(exc)) from exc

    def close(self) -> None:
        self.connection.close()

    def _write(self, sql: str, params: tuple) -> None:
        with self._write_lock:
            try:
                with self.connection:
                    self.connection.execute(sql, params)
            except sqlite3.Error as exc:
                logger.error("Entity store write failed: %s", exc)
                raise StoreCorruptError(str(exc)) from exc

    @staticmethod
    def _decode(entity_id: str, payload: str) -> Destination:
        try:
            return DestinationSchema.model_validate_json(payload).to_domain()
        except ValidationError as exc:
            logger.error("Undecodable record %s in entity store", entity_id)
            raise StoreCorruptError(f"undecodable record {entity_id}") from exc
