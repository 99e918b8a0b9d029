import json
import logging
import time
from typing import List, Optional

from wpsearch.catalog.models import CacheEntrySummary, CatalogResponse
from wpsearch.db.manager import DatabaseManager

logger = logging.getLogger(__name__)


class QueryCache:
    """Time-bounded cache of sanitized responses in the shared transients table.

    Only keys under ``prefix`` are ever read, written or deleted.
    """

    def __init__(self, db: DatabaseManager, prefix: str):
        if not prefix:
            raise ValueError("Cache namespace prefix must not be empty")
        self.db = db
        self.prefix = prefix

    def _owns(self, key: str) -> bool:
        return key.startswith(self.prefix)

    def _namespace_clause(self) -> str:
        # substr rather than LIKE: '_' in the prefix is not a wildcard here
        p = self.db.placeholder
        return f"substr(option_name, 1, {len(self.prefix)}) = {p}"

    def get(self, key: str) -> Optional[CatalogResponse]:
        if not self._owns(key):
            return None

        p = self.db.placeholder
        conn = self.db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT option_value, expires_at FROM transients WHERE option_name = {p}",
                (key,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            row = dict(row)
            if row["expires_at"] <= int(time.time()):
                cursor.execute(
                    f"DELETE FROM transients WHERE option_name = {p}", (key,)
                )
                conn.commit()
                logger.debug("Evicted expired cache entry %s", key)
                return None
            return CatalogResponse.model_validate(json.loads(row["option_value"]))
        finally:
            conn.close()

    def put(self, key: str, response: CatalogResponse, ttl: int):
        if not self._owns(key):
            raise ValueError(f"Cache key '{key}' is outside namespace '{self.prefix}'")

        p = self.db.placeholder
        expires_at = int(time.time()) + ttl
        value = json.dumps(response.to_payload())
        conn = self.db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                INSERT INTO transients (option_name, option_value, expires_at)
                VALUES ({p}, {p}, {p})
                ON CONFLICT (option_name) DO UPDATE SET
                    option_value = EXCLUDED.option_value,
                    expires_at = EXCLUDED.expires_at
                """,
                (key, value, expires_at),
            )
            conn.commit()
        finally:
            conn.close()

    def clear_namespace(self) -> int:
        conn = self.db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"DELETE FROM transients WHERE {self._namespace_clause()}",
                (self.prefix,),
            )
            deleted = cursor.rowcount
            conn.commit()
            logger.info("Cleared %s cache entries under '%s'", deleted, self.prefix)
            return deleted
        finally:
            conn.close()

    def list_entries(self) -> List[CacheEntrySummary]:
        p = self.db.placeholder
        conn = self.db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT option_name, option_value, expires_at FROM transients
                WHERE {self._namespace_clause()} AND expires_at > {p}
                ORDER BY option_name
                """,
                (self.prefix, int(time.time())),
            )
            rows = [dict(row) for row in cursor.fetchall()]
        finally:
            conn.close()

        entries = []
        for row in rows:
            try:
                data = json.loads(row["option_value"])
            except ValueError:
                data = None
            plugins = data.get("plugins") if isinstance(data, dict) else None
            entries.append(
                CacheEntrySummary(
                    key=row["option_name"],
                    has_data=bool(data),
                    plugin_count=len(plugins) if isinstance(plugins, list) else 0,
                    expires_at=row["expires_at"],
                )
            )
        return entries
