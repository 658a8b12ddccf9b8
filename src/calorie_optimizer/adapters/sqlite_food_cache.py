"""FDC food detail cache backed by SQLite."""

import sqlite3
from pathlib import Path

from calorie_optimizer.domain.nutrition import FoodDetail
from calorie_optimizer.services.food_cache import (
    FoodDetailCache,
    deserialize_detail,
    serialize_detail,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS usda_cache (
    fdc_id INTEGER PRIMARY KEY,
    response_data TEXT NOT NULL
)
"""


class SqliteFoodCache(FoodDetailCache):
    """Stores one serialized detail per FDC id in a local SQLite file."""

    def __init__(self, db_path: str | Path = "usda_cache.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            path = str(self._db_path)
            if path != ":memory:":
                resolved = Path(path).expanduser()
                resolved.parent.mkdir(parents=True, exist_ok=True)
                path = str(resolved)
            self._conn = sqlite3.connect(path)
            self._conn.execute(_SCHEMA)
            self._conn.commit()
        return self._conn

    def close(self) -> None:
        """Close the underlying connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get(self, fdc_id: int) -> FoodDetail | None:
        """Return the cached detail for an id, if present."""
        row = (
            self._get_conn()
            .execute("SELECT response_data FROM usda_cache WHERE fdc_id = ?", (fdc_id,))
            .fetchone()
        )
        if row is None:
            return None
        return deserialize_detail(row[0])

    def put(self, fdc_id: int, detail: FoodDetail) -> None:
        """Insert or replace the detail stored for an id."""
        conn = self._get_conn()
        conn.execute(
            "INSERT OR REPLACE INTO usda_cache (fdc_id, response_data) VALUES (?, ?)",
            (fdc_id, serialize_detail(detail)),
        )
        conn.commit()
