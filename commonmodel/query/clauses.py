"""
Clause helpers shared by the composer.

Table and column names arrive as strings, so everything here builds
lightweight ``table()``/``column()`` constructs: no reflection, and the
engine still quotes identifiers and binds every value as a parameter.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

import sqlalchemy as sa
from sqlalchemy.sql import ColumnElement, FromClause, Select
from sqlalchemy.sql.expression import TableClause

from commonmodel.contracts.query import JoinClause, RawFragment

LIKE_ESCAPE = "/"

_JOIN_KINDS = {
    "inner": "inner",
    "left": "left",
    "left outer": "left",
    "right": "right",
    "right outer": "right",
    "outer": "full",
    "full": "full",
    "full outer": "full",
}


def table_ref(name: str, *columns: str) -> TableClause:
    """``users`` or ``schema.users``, optionally declaring columns for DML."""
    schema, _, table_name = name.strip().rpartition(".")
    return sa.table(table_name, *(sa.column(c) for c in columns), schema=schema or None)


def from_ref(name: str) -> FromClause:
    """Like ``table_ref`` but also accepts an alias: ``roles r`` / ``roles AS r``."""
    parts = name.split()
    if len(parts) == 3 and parts[1].lower() == "as":
        parts = [parts[0], parts[2]]
    if len(parts) == 2:
        return table_ref(parts[0]).alias(parts[1])
    return table_ref(name)


def column_ref(name: str) -> ColumnElement[Any]:
    # Qualified names stay textual: a column bound to its own table() would
    # drag an extra, unjoined FROM entry into the statement.
    name = name.strip()
    if "." in name:
        return sa.literal_column(name)
    return sa.column(name)


def equalities(mapping: Mapping[str, Any]) -> list[ColumnElement[bool]]:
    return [column_ref(key) == value for key, value in mapping.items()]


def like_term(name: str, value: Any) -> ColumnElement[bool]:
    """``name LIKE '%value%'`` with LIKE wildcards in ``value`` escaped."""
    escaped = (
        str(value)
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return column_ref(name).like(f"%{escaped}%", escape=LIKE_ESCAPE)


def like_terms(mapping: Mapping[str, Any]) -> list[ColumnElement[bool]]:
    return [like_term(key, value) for key, value in mapping.items()]


def apply_joins(source: FromClause, joins: Iterable[JoinClause]) -> FromClause:
    for join in joins:
        # Unrecognized types fall back to a plain JOIN.
        kind = _JOIN_KINDS.get(" ".join(join.join_type.lower().split()), "inner")
        target = from_ref(join.table)
        onclause = sa.literal_column(join.condition)
        if kind == "right":
            source = sa.join(target, source, onclause, isouter=True)
        else:
            source = sa.join(source, target, onclause, isouter=kind == "left", full=kind == "full")
    return source


def raw_select(fragment: RawFragment, source: FromClause) -> Select:
    return sa.select(sa.literal_column(fragment)).select_from(source)


def apply_order(stmt: Select, order: RawFragment) -> Select:
    if not order.strip():
        return stmt
    return stmt.order_by(sa.text(order))


def ordered_columns(rows: Sequence[Mapping[str, Any]]) -> list[str]:
    """Union of the row keys in first-seen order."""
    return list(dict.fromkeys(key for row in rows for key in row))
