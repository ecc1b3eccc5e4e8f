"""SQLite phrase store adapter.

Vectors are persisted as float64 BLOBs produced by the vector codec, and
queries rank every stored row exactly in Python. Index schemas live in a
shared metadata table so a reopened database keeps its dimension and metric.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ...core.contracts import DatabasePort
from ...core.errors import IndexNotFoundError, MalformedVectorError
from ...core.metrics import VectorMetric, VectorMetricInput, normalize_vector_metric
from ...core.types import IndexSchema, PhraseHit, PhraseRecord
from ...core.vector_codec import decode_vector, encode_vector
from ._base import (
    SUPPORTED_METRICS,
    build_schema,
    check_k,
    check_schema,
    normalize_vector,
    rank_records,
)

logger = logging.getLogger(__name__)

_INDEXES_META_TABLE = "_phrase_search_indexes"
_TABLE_PREFIX = "phrase_index__"
_COLUMNS = ("id", "text", "embedding")


class SQLitePhraseStore:
    """Exact phrase index persisted in a SQLite database."""

    exact = True

    def __init__(self, db: DatabasePort) -> None:
        dialect_name = str(getattr(db.dialect, "name", "")).lower()
        if dialect_name != "sqlite":
            raise ValueError(
                "SQLitePhraseStore requires a database adapter configured with "
                "SQLiteDialect."
            )
        self._db = db
        self._schemas: dict[str, IndexSchema] = {}

    def ensure_index(
        self,
        name: str,
        dimension: int,
        metric: VectorMetricInput = VectorMetric.COSINE,
    ) -> None:
        requested = build_schema(name, dimension, metric)
        meta_table = self._q(_INDEXES_META_TABLE)
        with self._db.transaction():
            self._db.execute(
                f"""CREATE TABLE IF NOT EXISTS {meta_table} (
                "name" TEXT PRIMARY KEY,
                "dimension" INTEGER NOT NULL,
                "metric" TEXT NOT NULL
            );"""
            )
            # First writer wins; later writers read back the stored schema.
            cursor = self._db.execute(
                self._db.dialect.insert_sql(
                    _INDEXES_META_TABLE,
                    ("name", "dimension", "metric"),
                    ignore_conflicts=True,
                ),
                {
                    "name": name,
                    "dimension": requested.dimension,
                    "metric": requested.metric.value,
                },
            )
            created = getattr(cursor, "rowcount", 0) == 1
            existing = self._load_schema(name)
            if existing is None:  # pragma: no cover - row was just inserted
                raise IndexNotFoundError(name)
            check_schema(existing, requested)
            self._db.execute(
                f"""CREATE TABLE IF NOT EXISTS {self._table(name)} (
                "id" TEXT PRIMARY KEY,
                "text" TEXT NOT NULL,
                "embedding" BLOB NOT NULL
            );"""
            )

        self._schemas[name] = existing
        if created:
            logger.info(
                "Created SQLite index %r (dimension=%d, metric=%s)",
                name,
                existing.dimension,
                existing.metric.value,
            )

    def describe_index(self, name: str) -> IndexSchema:
        return self._get_schema(name)

    def upsert(
        self,
        index_name: str,
        phrase_id: str,
        text: str,
        vector: Sequence[float],
    ) -> None:
        schema = self._get_schema(index_name)
        blob = encode_vector(normalize_vector(vector, schema.dimension))
        sql = self._db.dialect.upsert_sql(
            _TABLE_PREFIX + index_name, _COLUMNS, "id"
        )
        with self._db.transaction():
            self._db.execute(sql, {"id": phrase_id, "text": text, "embedding": blob})
        logger.debug("Upserted %s into SQLite index %r", phrase_id[:12], index_name)

    def knn_query(
        self,
        index_name: str,
        vector: Sequence[float],
        k: int,
    ) -> list[PhraseHit]:
        check_k(k)
        schema = self._get_schema(index_name)
        query_vector = normalize_vector(vector, schema.dimension)
        if k == 0:
            return []

        rows = self._db.fetchall(
            f'SELECT "id", "text", "embedding" FROM {self._table(index_name)};'
        )
        records = (self._row_to_record(row, schema) for row in rows)
        return rank_records(schema.metric, query_vector, records, k)

    def fetch(
        self, index_name: str, ids: Optional[Sequence[str]] = None
    ) -> list[PhraseRecord]:
        schema = self._get_schema(index_name)
        base_sql = f'SELECT "id", "text", "embedding" FROM {self._table(index_name)}'

        if ids is None:
            rows = self._db.fetchall(base_sql + ' ORDER BY rowid ASC;')
            return [self._row_to_record(row, schema) for row in rows]

        if not ids:
            return []

        where, params = self._db.dialect.in_clause(
            "id", [str(item_id) for item_id in ids], prefix="id"
        )
        rows = self._db.fetchall(f"{base_sql} WHERE {where};", params)
        by_id = {str(row["id"]): row for row in rows}
        return [
            self._row_to_record(by_id[str(item_id)], schema)
            for item_id in ids
            if str(item_id) in by_id
        ]

    def count(self, index_name: str) -> int:
        self._get_schema(index_name)
        row = self._db.fetchone(
            f"SELECT COUNT(*) AS total FROM {self._table(index_name)};"
        )
        return int(row["total"]) if row is not None else 0

    def _get_schema(self, name: str) -> IndexSchema:
        schema = self._schemas.get(name)
        if schema is not None:
            return schema

        schema = self._load_schema(name)
        if schema is None:
            raise IndexNotFoundError(name)
        self._schemas[name] = schema
        return schema

    def _load_schema(self, name: str) -> IndexSchema | None:
        if not self._meta_table_exists():
            return None
        row = self._db.fetchone(
            'SELECT "name", "dimension", "metric" '
            f"FROM {self._q(_INDEXES_META_TABLE)} "
            f'WHERE "name" = {self._p("name")};',
            {"name": name},
        )
        if row is None:
            return None
        try:
            metric = normalize_vector_metric(str(row["metric"]), supported=SUPPORTED_METRICS)
        except ValueError as exc:
            raise ValueError(
                f"Index metric metadata for {name!r} is invalid: {row['metric']!r}"
            ) from exc
        return IndexSchema(name=name, dimension=int(row["dimension"]), metric=metric)

    def _meta_table_exists(self) -> bool:
        row = self._db.fetchone(
            "SELECT 1 AS exists_flag FROM sqlite_master "
            f"WHERE type = 'table' AND name = {self._p('table')};",
            {"table": _INDEXES_META_TABLE},
        )
        return row is not None

    @staticmethod
    def _row_to_record(row: Mapping[str, Any], schema: IndexSchema) -> PhraseRecord:
        vector = decode_vector(row["embedding"])
        if len(vector) != schema.dimension:
            raise MalformedVectorError(
                f"Stored vector for {row['id']!r} in index {schema.name!r} has "
                f"{len(vector)} values; expected {schema.dimension}"
            )
        return PhraseRecord(id=str(row["id"]), text=str(row["text"]), vector=vector)

    def _table(self, index_name: str) -> str:
        return self._q(_TABLE_PREFIX + index_name)

    def _q(self, ident: str) -> str:
        return self._db.dialect.q(ident)

    def _p(self, key: str) -> str:
        return self._db.dialect.placeholder(key)
