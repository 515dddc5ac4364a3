"""Parameterized SQL for list endpoints with optional filters.

Filters are appended in the order they are added. Values are always bound as
`:p1`, `:p2`, ... and never rendered into the SQL text.
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import text


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and value.strip() == "":
        return False
    return True


class QueryBuilder:
    def __init__(self, base_sql: str, params: Sequence[Any] = ()):
        # `base_sql` may already use :p1..:pN for the values in `params`
        self._sql = base_sql.rstrip()
        self._params: List[Any] = list(params)
        self._group_by: Optional[str] = None
        self._order_by: Optional[str] = None
        self._limit: Optional[int] = None

    def _next_placeholder(self) -> str:
        return f":p{len(self._params) + 1}"

    def where(self, column: str, value: Any, op: str = "=") -> "QueryBuilder":
        if _present(value):
            self._sql += f" AND {column} {op} {self._next_placeholder()}"
            self._params.append(value)
        return self

    def search(self, columns: Iterable[str], value: Optional[str]) -> "QueryBuilder":
        """Case-insensitive substring match of `value` against any of `columns`."""
        columns = list(columns)
        if not columns or not _present(value):
            return self

        placeholder = self._next_placeholder()
        matches = " OR ".join(f"LOWER({c}) LIKE {placeholder}" for c in columns)
        self._sql += f" AND ({matches})"
        self._params.append(f"%{value.strip().lower()}%")
        return self

    def group_by(self, clause: str) -> "QueryBuilder":
        self._group_by = clause
        return self

    def order_by(self, clause: str) -> "QueryBuilder":
        self._order_by = clause
        return self

    def limit(self, count: int) -> "QueryBuilder":
        self._limit = int(count)
        return self

    @property
    def params(self) -> List[Any]:
        return list(self._params)

    def build(self) -> Tuple[str, List[Any]]:
        sql = self._sql
        if self._group_by:
            sql += f" GROUP BY {self._group_by}"
        if self._order_by:
            sql += f" ORDER BY {self._order_by}"
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        return sql, list(self._params)

    def bind_params(self) -> Dict[str, Any]:
        return {f"p{i}": value for i, value in enumerate(self._params, start=1)}

    def statement(self, **column_types):
        """`text()` clause for execution; keyword args type result columns."""
        sql, _ = self.build()
        clause = text(sql)
        if column_types:
            return clause.columns(**column_types)
        return clause


def fetch_all(session, builder: QueryBuilder, **column_types) -> List[Dict[str, Any]]:
    result = session.exec(builder.statement(**column_types), params=builder.bind_params())
    return [dict(row._mapping) for row in result]
