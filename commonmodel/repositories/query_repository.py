import logging
from typing import Any, Iterable, Mapping, Sequence

import sqlalchemy as sa

from commonmodel.contracts.query import JoinClause, QueryDescriptor, QueryOptions, RawFragment
from commonmodel.query.clauses import table_ref
from commonmodel.query.composer import Row

from .base import BaseTableRepository

logger = logging.getLogger(__name__)

# Drivers whose cursor lastrowid is not the new key; create() uses RETURNING.
_RETURNING_DIALECTS = {"postgresql", "oracle", "mssql"}

JoinLike = JoinClause | Mapping[str, Any]
OptionsLike = QueryOptions | Mapping[str, Any]


class QueryRepository(BaseTableRepository):
    """Data access helper for reading and writing rows of any table."""

    def query(self, descriptor: QueryDescriptor) -> list[Row] | Row | None:
        return self._fetch("query", self._composer.compose(descriptor))

    def lists(
        self,
        table: str,
        select: str = "*",
        where: Mapping[str, Any] | None = None,
        order: str = "id ASC",
        limit: int = 0,
        pk_count: int = 0,
        like: Mapping[str, Any] | None = None,
        or_where: Mapping[str, Any] | None = None,
        joins: Iterable[JoinLike] | None = None,
        options: OptionsLike | None = None,
    ) -> list[Row] | Row | None:
        """
        List rows of ``table``.

        ``pk_count`` is the row offset. With ``options={"isReset": True}`` only
        the first matching row is returned (or ``None``) and limit/offset are
        ignored.
        """
        descriptor = QueryDescriptor(
            table=table,
            select=select,
            where=dict(where or {}),
            order=order,
            limit=limit,
            offset=pk_count,
            like=dict(like or {}),
            or_where=dict(or_where or {}),
            joins=list(joins or []),
            options=options if options is not None else QueryOptions(),
        )
        return self._fetch("lists", self._composer.compose(descriptor))

    def where_with_joins(
        self,
        table: str,
        select: str = "*",
        where: Mapping[str, Any] | None = None,
        order: str = "id ASC",
        limit: int = 0,
        pk_count: int = 0,
        like: Mapping[str, Any] | None = None,
        or_where: Mapping[str, Any] | None = None,
        joins: Iterable[JoinLike] | None = None,
    ) -> list[Row]:
        """Same clause rules as ``lists``, always returning a list."""
        descriptor = QueryDescriptor(
            table=table,
            select=select,
            where=dict(where or {}),
            order=order,
            limit=limit,
            offset=pk_count,
            like=dict(like or {}),
            or_where=dict(or_where or {}),
            joins=list(joins or []),
        )
        return self._fetch("where_with_joins", self._composer.compose(descriptor))

    def create(self, table: str, data: Mapping[str, Any]) -> int:
        """
        Insert one row and return its new id.

        SQLite and MySQL report the id through the cursor's ``lastrowid``.
        PostgreSQL, Oracle and SQL Server read the table's single-column
        primary key back with RETURNING. 0 when there is no id to report.
        """

        def insert(connection: sa.Connection) -> int:
            key = _returned_key(connection, table)
            stmt = self._composer.insert_one(table, data, returning=key)
            logger.debug("create: %s", stmt)
            result = connection.execute(stmt)
            if key is not None:
                return result.scalar_one()
            return result.lastrowid or 0

        return self._with_connection("create", insert)

    def create_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        """Insert ``rows`` in one executemany batch and return the driver's row count."""
        if not rows:
            logger.warning("create_many on %s called without rows; nothing inserted", table)
            return 0
        stmt = self._composer.insert_many(table, rows)
        return self._run(
            "create_many",
            stmt,
            lambda result: result.rowcount,
            parameters=[dict(row) for row in rows],
        )

    def edit(self, table: str, data: Mapping[str, Any], where: Mapping[str, Any] | None = None) -> bool:
        self._run("edit", self._composer.update(table, data, where or {}), lambda result: None)
        return True

    def remove(self, table: str, where: Mapping[str, Any] | None = None) -> bool:
        # An empty where deletes every row.
        self._run("remove", self._composer.delete(table, where or {}), lambda result: None)
        return True

    def select_one(
        self,
        table: str,
        where: Mapping[str, Any] | None = None,
        select: str = "*",
        order: str = "id ASC",
    ) -> Row | None:
        query = self._composer.select_one(table, where or {}, RawFragment(select), RawFragment(order))
        return self._fetch("select_one", query)

    def count(self, table: str, where: Mapping[str, Any] | None = None) -> int:
        return self._scalar("count", self._composer.count(table, where or {}))

    def is_have(self, table: str, where: Mapping[str, Any]) -> int:
        """1 when at least one row matches, else 0."""
        return self._run("is_have", self._composer.exists(table, where), lambda result: len(result.all()))

    def where_in_check_data(self, column: str, table: str, values: Iterable[Any] = ()) -> int:
        """1 when a row has ``column`` in ``values``, else 0."""
        stmt = self._composer.exists_in(column, table, values)
        return self._run("where_in_check_data", stmt, lambda result: len(result.all()))

    def research(
        self,
        table: str,
        like: Mapping[str, Any] | None = None,
        select: str = "*",
        where: Mapping[str, Any] | None = None,
    ) -> list[Row]:
        query = self._composer.research(table, like or {}, RawFragment(select), where or {})
        return self._fetch("research", query)

    def not_where_in_list(
        self,
        table: str,
        select: str = "*",
        joins: Iterable[JoinLike] | None = None,
        exclude_column: str = "",
        exclude_values: Iterable[Any] = (),
        order: str = "queue ASC",
    ) -> list[Row]:
        """Rows whose ``exclude_column`` is not in ``exclude_values``; never limited."""
        join_clauses = [JoinClause.model_validate(join) for join in joins or []]
        query = self._composer.not_in_list(
            table, RawFragment(select), join_clauses, exclude_column, exclude_values, RawFragment(order)
        )
        return self._fetch("not_where_in_list", query)

    def empty_table_datas(self, table: str) -> bool:
        """Remove every row of ``table``, keeping the table."""
        def truncate(connection: sa.Connection) -> None:
            if connection.dialect.name == "sqlite":
                connection.execute(sa.delete(table_ref(table)))
            else:
                name = connection.dialect.identifier_preparer.format_table(table_ref(table))
                connection.execute(sa.text(f"TRUNCATE TABLE {name}"))

        self._with_connection("empty_table_datas", truncate)
        return True


def _returned_key(connection: sa.Connection, table: str) -> str | None:
    if connection.dialect.name not in _RETURNING_DIALECTS:
        return None
    ref = table_ref(table)
    primary = sa.inspect(connection).get_pk_constraint(ref.name, schema=ref.schema)
    columns = primary.get("constrained_columns") or []
    return columns[0] if len(columns) == 1 else None
