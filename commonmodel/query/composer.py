from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

import sqlalchemy as sa
from sqlalchemy.engine import Result
from sqlalchemy.sql import ColumnElement, Executable, Select

from commonmodel.contracts.query import FetchMode, JoinClause, QueryDescriptor, RawFragment
from commonmodel.query.clauses import (
    apply_joins,
    apply_order,
    column_ref,
    equalities,
    from_ref,
    like_terms,
    ordered_columns,
    raw_select,
    table_ref,
)

Row = dict[str, Any]


@dataclass(frozen=True)
class ComposedQuery:
    statement: Executable
    mode: FetchMode


class QueryComposer:
    """
    Turns query descriptors into SQLAlchemy statements.

    ``compose`` owns the clause order of list queries: selection, joins,
    AND-equalities, the OR group, the LIKE step, ordering, then either the
    single-row mode or LIMIT/OFFSET. The remaining builders back the
    single-purpose operations.
    """

    def compose(self, descriptor: QueryDescriptor) -> ComposedQuery:
        source = apply_joins(from_ref(descriptor.table), descriptor.joins)
        stmt = raw_select(descriptor.select, source)

        criteria = self.filters(descriptor.where, descriptor.or_where)
        if criteria is not None:
            stmt = stmt.where(criteria)

        if descriptor.like:
            terms = like_terms(descriptor.like)
            # One term is ANDed as is; several form a single OR group.
            stmt = stmt.where(terms[0] if len(terms) == 1 else sa.or_(*terms))

        stmt = apply_order(stmt, descriptor.order)

        if descriptor.mode is FetchMode.ROW:
            return ComposedQuery(stmt, FetchMode.ROW)

        if descriptor.limit > 0:
            stmt = stmt.limit(descriptor.limit)
        if descriptor.offset > 0:
            stmt = stmt.offset(descriptor.offset)
        return ComposedQuery(stmt, FetchMode.ROWS)

    @staticmethod
    def filters(
        where: Mapping[str, Any],
        or_where: Mapping[str, Any],
    ) -> ColumnElement[bool] | None:
        """``(<where>) OR (<or_where>)``, either side optional."""
        criteria = sa.and_(*equalities(where)) if where else None
        if or_where:
            alternative = sa.and_(*equalities(or_where))
            criteria = alternative if criteria is None else sa.or_(criteria, alternative)
        return criteria

    def insert_one(self, table: str, data: Mapping[str, Any], returning: str | None = None) -> Executable:
        """Single-row INSERT; ``returning`` names a key column to read back."""
        columns = list(dict.fromkeys([*data, returning] if returning else data))
        target = table_ref(table, *columns)
        stmt = sa.insert(target).values(dict(data))
        return stmt.returning(target.c[returning]) if returning else stmt

    def insert_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> Executable:
        """Parameterless INSERT; rows go to the engine as executemany parameters."""
        return sa.insert(table_ref(table, *ordered_columns(rows)))

    def update(self, table: str, data: Mapping[str, Any], where: Mapping[str, Any]) -> Executable:
        return sa.update(table_ref(table, *data)).where(*equalities(where)).values(dict(data))

    def delete(self, table: str, where: Mapping[str, Any]) -> Executable:
        return sa.delete(table_ref(table)).where(*equalities(where))

    def select_one(
        self,
        table: str,
        where: Mapping[str, Any],
        select: RawFragment,
        order: RawFragment,
    ) -> ComposedQuery:
        stmt = raw_select(select, from_ref(table)).where(*equalities(where))
        return ComposedQuery(apply_order(stmt, order), FetchMode.ROW)

    def count(self, table: str, where: Mapping[str, Any]) -> Select:
        return sa.select(sa.func.count()).select_from(from_ref(table)).where(*equalities(where))

    def exists(self, table: str, where: Mapping[str, Any]) -> Select:
        return raw_select(RawFragment("*"), from_ref(table)).where(*equalities(where)).limit(1)

    def exists_in(self, column: str, table: str, values: Iterable[Any]) -> Select:
        return raw_select(RawFragment("*"), from_ref(table)).where(column_ref(column).in_(list(values))).limit(1)

    def research(
        self,
        table: str,
        like: Mapping[str, Any],
        select: RawFragment,
        where: Mapping[str, Any],
    ) -> ComposedQuery:
        # Every LIKE term is ANDed on its own here, unlike the OR group of compose().
        stmt = raw_select(select, from_ref(table)).where(*equalities(where)).where(*like_terms(like))
        return ComposedQuery(stmt, FetchMode.ROWS)

    def not_in_list(
        self,
        table: str,
        select: RawFragment,
        joins: Iterable[JoinClause],
        column: str,
        values: Iterable[Any],
        order: RawFragment,
    ) -> ComposedQuery:
        source = apply_joins(from_ref(table), joins)
        stmt = raw_select(select, source).where(column_ref(column).not_in(list(values)))
        return ComposedQuery(apply_order(stmt, order), FetchMode.ROWS)


def extract(result: Result[Any], mode: FetchMode) -> list[Row] | Row | None:
    """
    Materialize rows as plain dicts keyed by result column name.

    Duplicate column names (typical with ``*`` across joins) keep the last
    value, the way a fetched record object would.
    """
    keys = list(result.keys())
    if mode is FetchMode.ROW:
        row = result.first()
        return dict(zip(keys, row)) if row is not None else None
    return [dict(zip(keys, row)) for row in result.all()]
