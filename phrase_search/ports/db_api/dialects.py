"""SQL dialect used by the SQLite phrase store."""

from __future__ import annotations

from typing import Any, Sequence


class Dialect:
    """Identifier quoting, placeholders and statement templates."""

    name: str = "generic"
    paramstyle: str = "named"
    quote_char: str = '"'

    def q(self, ident: str) -> str:
        """Quote SQL identifier, doubling embedded quote characters."""

        escaped = str(ident).replace(self.quote_char, self.quote_char * 2)
        return f"{self.quote_char}{escaped}{self.quote_char}"

    def placeholder(self, key: str) -> str:
        if self.paramstyle == "named":
            return f":{key}"
        if self.paramstyle == "qmark":
            return "?"
        raise ValueError(f"Unsupported paramstyle: {self.paramstyle}")

    def insert_sql(
        self, table: str, columns: Sequence[str], *, ignore_conflicts: bool = False
    ) -> str:
        """`INSERT` of one row; optionally keep the existing row on key conflict."""

        verb = "INSERT OR IGNORE" if ignore_conflicts else "INSERT"
        cols = ", ".join(self.q(col) for col in columns)
        values = ", ".join(self.placeholder(col) for col in columns)
        return f"{verb} INTO {self.q(table)} ({cols}) VALUES ({values});"

    def upsert_sql(self, table: str, columns: Sequence[str], key: str) -> str:
        """Single-statement insert that replaces every non-key column on conflict."""

        updates = ", ".join(
            f"{self.q(col)} = excluded.{self.q(col)}" for col in columns if col != key
        )
        return (
            self.insert_sql(table, columns).rstrip(";")
            + f" ON CONFLICT ({self.q(key)}) DO UPDATE SET {updates};"
        )

    def in_clause(
        self, column: str, values: Sequence[Any], *, prefix: str = "p"
    ) -> tuple[str, dict[str, Any]]:
        """Return `"column" IN (...)` and its named parameters."""

        params = {f"{prefix}_{idx}": value for idx, value in enumerate(values)}
        placeholders = ", ".join(self.placeholder(key) for key in params)
        return f"{self.q(column)} IN ({placeholders})", params


class SQLiteDialect(Dialect):
    """SQLite dialect (`:name` parameters, `ON CONFLICT` upserts since 3.24)."""

    name = "sqlite"
    paramstyle = "named"
    quote_char = '"'
