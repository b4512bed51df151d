from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    literal,
    select,
)
from sqlalchemy.engine import Engine

from ..log import getLogger
from .base import KeyValueStore

logger = getLogger(__name__)


def kv_table(metadata: MetaData, name: str = "kv_store") -> Table:
    return Table(
        name,
        metadata,
        Column("key", String(255), primary_key=True),
        Column("value", Text, nullable=False),
        Column("updated_at", DateTime, nullable=False),
    )


class SqlKeyValueStore(KeyValueStore):
    """
    Key-value store on a single SQL table.

    - Defaults to a local SQLite file; any SQLAlchemy URL works.
    - Optionally namespaces keys as '<namespace>/<key>' so several diagrams
      can share one table.
    - Each `set` replaces the row inside one transaction.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        table: str = "kv_store",
        namespace: Optional[str] = None,
        owns_engine: bool = False,
    ) -> None:
        self._engine = engine
        self._namespace = namespace
        self._owns_engine = owns_engine

        self._metadata = MetaData()
        self._table = kv_table(self._metadata, table)
        self._metadata.create_all(engine)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        table: str = "kv_store",
        namespace: Optional[str] = None,
    ) -> SqlKeyValueStore:
        engine = create_engine(url)
        logger.info("Opened key-value table %r at %s", table, engine.url)
        return cls(engine, table=table, namespace=namespace, owns_engine=True)

    @property
    def engine(self) -> Engine:
        return self._engine

    def _full_key(self, key: str) -> str:
        return f"{self._namespace}/{key}" if self._namespace else key

    def get(self, key: str) -> Optional[str]:
        t = self._table
        with self._engine.connect() as conn:
            row = conn.execute(
                select(t.c.value).where(t.c.key == literal(self._full_key(key)))
            ).first()
        return None if row is None else row[0]

    def set(self, key: str, value: str) -> None:
        t = self._table
        full = self._full_key(key)
        with self._engine.begin() as conn:
            conn.execute(delete(t).where(t.c.key == literal(full)))
            conn.execute(
                insert(t).values(
                    key=full, value=value, updated_at=datetime.now(timezone.utc)
                )
            )

    def delete(self, key: str) -> bool:
        t = self._table
        with self._engine.begin() as conn:
            result = conn.execute(delete(t).where(t.c.key == literal(self._full_key(key))))
        return bool(result.rowcount)

    def close(self) -> None:
        if self._owns_engine:
            self._engine.dispose()
