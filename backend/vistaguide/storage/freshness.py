from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Mapping, Optional

from vistaguide.core.config import Settings
from vistaguide.core.errors import StoreCorruptError
from vistaguide.models.domain import FreshnessKind

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ttls_from_settings(settings: Settings) -> Dict[FreshnessKind, timedelta]:
    return {
        FreshnessKind.enrichment: timedelta(minutes=settings.enrichment_ttl_minutes),
        FreshnessKind.weather: timedelta(minutes=settings.weather_ttl_minutes),
        FreshnessKind.recommendations: timedelta(
            minutes=settings.recommendations_ttl_minutes
        ),
        FreshnessKind.image: timedelta(minutes=settings.image_ttl_minutes),
    }


class FreshnessTracker:
    """Remembers when each (kind, entity) was last refreshed from a remote source.

    A missing record or an unreadable timestamp counts as expired.
    """

    CREATE_TABLE = """
        CREATE TABLE IF NOT EXISTS freshness (
            kind         text NOT NULL,
            entity_id    text NOT NULL,
            refreshed_at text NOT NULL,
            PRIMARY KEY(kind, entity_id)
        );
        """

    SELECT_ONE = "SELECT refreshed_at FROM freshness WHERE kind=? AND entity_id=?"

    UPSERT = """
        INSERT OR REPLACE INTO freshness(kind, entity_id, refreshed_at)
        VALUES (?, ?, ?)
        """

    SELECT_ALL = "SELECT kind, entity_id, refreshed_at FROM freshness"

    def __init__(
        self,
        db_path: str,
        ttls: Mapping[FreshnessKind, timedelta],
        clock: Optional[Clock] = None,
    ) -> None:
        self.ttls = dict(ttls)
        self.clock = clock or _utcnow
        self._lock = threading.RLock()
        try:
            self.connection = sqlite3.connect(db_path, check_same_thread=False)
            self.connection.execute(self.CREATE_TABLE)
            self.connection.commit()
        except sqlite3.Error as exc:
            raise StoreCorruptError(f"cannot open freshness table: {exc}") from exc

    def ttl(self, kind: FreshnessKind) -> timedelta:
        return self.ttls[kind]

    def is_expired(self, kind: FreshnessKind, entity_id: str) -> bool:
        refreshed_at = self._refreshed_at(kind, entity_id)
        if refreshed_at is None:
            return True
        return self.clock() - refreshed_at > self.ttl(kind)

    def mark_fresh(self, kind: FreshnessKind, entity_id: str) -> None:
        self._execute(self.UPSERT, (kind.value, entity_id, self.clock().isoformat()))
        logger.debug("Marked %s fresh for %s", kind.value, entity_id)

    def age_minutes(self, kind: FreshnessKind, entity_id: str) -> Optional[float]:
        refreshed_at = self._refreshed_at(kind, entity_id)
        if refreshed_at is None:
            return None
        return (self.clock() - refreshed_at).total_seconds() / 60.0

    def clear(
        self, kind: Optional[FreshnessKind] = None, entity_id: Optional[str] = None
    ) -> None:
        clauses, params = [], []
        if kind is not None:
            clauses.append("kind=?")
            params.append(kind.value)
        if entity_id is not None:
            clauses.append("entity_id=?")
            params.append(entity_id)
        sql = "DELETE FROM freshness"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        self._execute(sql, tuple(params))

    def prune_expired(self) -> int:
        """Delete every expired record and return how many were removed."""
        now = self.clock()
        stale = []
        for kind_value, entity_id, raw in self._rows():
            try:
                kind = FreshnessKind(kind_value)
            except ValueError:
                stale.append((kind_value, entity_id))
                continue
            refreshed_at = _parse(raw)
            if refreshed_at is None or now - refreshed_at > self.ttl(kind):
                stale.append((kind_value, entity_id))
        with self._lock:
            try:
                with self.connection:
                    self.connection.executemany(
                        "DELETE FROM freshness WHERE kind=? AND entity_id=?", stale
                    )
            except sqlite3.Error as exc:
                raise StoreCorruptError(str(exc)) from exc
        if stale:
            logger.info("Pruned %d expired freshness record(s)", len(stale))
        return len(stale)

    def stats(self) -> Dict[str, int]:
        counts = {kind.value: 0 for kind in FreshnessKind}
        for kind_value, _, _ in self._rows():
            counts[kind_value] = counts.get(kind_value, 0) + 1
        return counts

    def _refreshed_at(self, kind: FreshnessKind, entity_id: str) -> Optional[datetime]:
        try:
            row = self.connection.execute(self.SELECT_ONE, (kind.value, entity_id)).fetchone()
        except sqlite3.Error as exc:
            raise StoreCorruptError(str(exc)) from exc
        if row is None:
            return None
        return _parse(row[0])

    def _rows(self):
        try:
            return self.connection.execute(self.SELECT_ALL).fetchall()
        except sqlite3.Error as exc:
            raise StoreCorruptError(str(exc)) from exc

    def _execute(self, sql: str, params: tuple) -> None:
        with self._lock:
            try:
                with self.connection:
                    self.connection.execute(sql, params)
            except sqlite3.Error as exc:
                raise StoreCorruptError(str(exc)) from exc


def _parse(raw: str) -> Optional[datetime]:
    try:
        value = datetime.fromisoformat(raw)
    except (TypeError, ValueError):
        logger.warning("Unparseable freshness timestamp %r, treating as expired", raw)
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
