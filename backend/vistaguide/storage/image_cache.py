import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Optional

from vistaguide.core.errors import StoreCorruptError
from vistaguide.models.domain import ImageCacheEntry

logger = logging.getLogger(__name__)


class ImageCache:
    """Durable entity id -> image URL map. Entries live until cleared."""

    CREATE_TABLE = """
        CREATE TABLE IF NOT EXISTS image_cache (
            entity_id  text PRIMARY KEY,
            url        text NOT NULL,
            provider   text NOT NULL,
            fetched_at text NOT NULL
        );
        """

    SELECT_ONE = "SELECT url, provider, fetched_at FROM image_cache WHERE entity_id=?"

    UPSERT = """
        INSERT OR REPLACE INTO image_cache(entity_id, url, provider, fetched_at)
        VALUES (?, ?, ?, ?)
        """

    def __init__(self, db_path: str) -> None:
        self._lock = threading.RLock()
        try:
            self.connection = sqlite3.connect(db_path, check_same_thread=False)
            self.connection.execute(self.CREATE_TABLE)
            self.connection.commit()
        except sqlite3.Error as exc:
            raise StoreCorruptError(f"cannot open image cache: {exc}") from exc

    def get(self, entity_id: str) -> Optional[ImageCacheEntry]:
        try:
            row = self.connection.execute(self.SELECT_ONE, (entity_id,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreCorruptError(str(exc)) from exc
        if row is None:
            return None
        url, provider, fetched_at = row
        try:
            fetched = datetime.fromisoformat(fetched_at)
        except ValueError as exc:
            raise StoreCorruptError(f"bad image cache row for {entity_id}") from exc
        return ImageCacheEntry(entity_id=entity_id, url=url, provider=provider, fetched_at=fetched)

    def put(self, entity_id: str, url: str, provider: str) -> ImageCacheEntry:
        entry = ImageCacheEntry(
            entity_id=entity_id,
            url=url,
            provider=provider,
            fetched_at=datetime.now(timezone.utc),
        )
        self._execute(
            self.UPSERT, (entity_id, url, provider, entry.fetched_at.isoformat())
        )
        return entry

    def delete(self, entity_id: str) -> None:
        self._execute("DELETE FROM image_cache WHERE entity_id=?", (entity_id,))

    def clear(self) -> None:
        self._execute("DELETE FROM image_cache", ())
        logger.info("Image cache cleared")

    def count(self) -> int:
        try:
            return self.connection.execute("SELECT count(*) FROM image_cache").fetchone()[0]
        except sqlite3.Error as exc:
            raise StoreCorruptError(str(exc)) from exc

    def _execute(self, sql: str, params: tuple) -> None:
        with self._lock:
            try:
                with self.connection:
                    self.connection.execute(sql, params)
            except sqlite3.Error as exc:
                raise StoreCorruptError(str(exc)) from exc
