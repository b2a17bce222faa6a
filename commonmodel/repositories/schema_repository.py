"""
Schema management passthrough.

Each method forwards to SQLAlchemy DDL or to alembic's ``Operations`` bound to
a live connection. ALTERs run in batch mode so that SQLite, which cannot alter
most things in place, gets the copy-and-move treatment; other backends receive
plain ALTER statements.
"""

import logging
from typing import Any, Mapping, Sequence

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.dialects import mysql
from sqlalchemy.engine import Connection
from sqlalchemy.types import TypeEngine

from commonmodel.contracts.schema import FieldDefinition, ForeignKeyDefinition, KeyDefinition
from commonmodel.errors.application_errors import InvalidSchemaDefinition

from .base import BaseTableRepository

logger = logging.getLogger(__name__)

FieldsLike = Mapping[str, FieldDefinition | Mapping[str, Any]]

_TYPE_ALIASES = {
    "INT": "INTEGER",
    "TINYINT": "SMALLINT",
    "MEDIUMINT": "INTEGER",
    "BOOL": "BOOLEAN",
    "MEDIUMTEXT": "TEXT",
    "LONGTEXT": "TEXT",
}


def _operations(connection: Connection) -> Operations:
    return Operations(MigrationContext.configure(connection))


def _type_args(type_cls: type[TypeEngine], constraint: int | str | None) -> tuple[Any, ...]:
    if constraint is None or constraint == "":
        return ()
    parts = tuple(int(part) for part in str(constraint).split(","))
    if issubclass(type_cls, (sa.String, sa.LargeBinary)):
        return parts[:1]
    if issubclass(type_cls, sa.Float):
        return parts[:1]
    if issubclass(type_cls, sa.Numeric):
        return parts[:2]
    return ()


def column_type(definition: FieldDefinition, field: str | None = None) -> TypeEngine:
    requested = definition.type.strip().upper()
    generic = _TYPE_ALIASES.get(requested, requested)
    type_cls = getattr(sa.types, generic, None)
    if not (isinstance(type_cls, type) and issubclass(type_cls, TypeEngine)):
        raise InvalidSchemaDefinition(f"Unknown column type {definition.type!r}", field)
    try:
        type_ = type_cls(*_type_args(type_cls, definition.constraint))
    except ValueError as exc:
        raise InvalidSchemaDefinition(f"Invalid constraint {definition.constraint!r}", field) from exc

    mysql_cls = getattr(mysql, requested, None) or getattr(mysql, generic, None)
    if definition.unsigned and issubclass(type_cls, (sa.Integer, sa.Numeric)) and mysql_cls is not None:
        type_ = type_.with_variant(mysql_cls(unsigned=True), "mysql", "mariadb")
    return type_


def build_column(name: str, definition: FieldDefinition, primary_key: bool | None = None) -> sa.Column:
    default = definition.default
    return sa.Column(
        name,
        column_type(definition, name),
        primary_key=definition.primary_key if primary_key is None else primary_key,
        nullable=definition.null,
        unique=definition.unique or None,
        autoincrement=True if definition.auto_increment else "auto",
        server_default=None if default is None else str(default),
    )


def _definitions(fields: FieldsLike) -> dict[str, FieldDefinition]:
    return {name: FieldDefinition.model_validate(spec) for name, spec in fields.items()}


class SchemaRepository(BaseTableRepository):
    """Table, column, key and database DDL."""

    def get_table_list(self) -> list[str]:
        return self._with_connection("get_table_list", lambda conn: sa.inspect(conn).get_table_names())

    def get_table_fields(self, table: str) -> list[dict[str, Any]]:
        def describe(connection: Connection) -> list[dict[str, Any]]:
            inspector = sa.inspect(connection)
            primary = set(inspector.get_pk_constraint(table).get("constrained_columns") or [])
            return [
                {
                    "name": column["name"],
                    "type": str(column["type"]),
                    "max_length": getattr(column["type"], "length", None),
                    "nullable": column["nullable"],
                    "default": column.get("default"),
                    "primary_key": column["name"] in primary,
                }
                for column in inspector.get_columns(table)
            ]

        return self._with_connection("get_table_fields", describe)

    def new_table(
        self,
        table: str,
        fields: FieldsLike,
        add_keys: KeyDefinition | Mapping[str, Any] | None = None,
        foreign_key: ForeignKeyDefinition | Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Create ``table`` unless it already exists.

        ``id`` becomes the primary key when neither a field nor ``add_keys``
        declares one.
        """
        definitions = _definitions(fields)
        keys = KeyDefinition.model_validate(add_keys or {})
        fk = ForeignKeyDefinition.model_validate(foreign_key or {})

        implicit_id = (
            "id" in definitions
            and not (keys.primary and keys.keys)
            and not any(d.primary_key for d in definitions.values())
        )

        def create(connection: Connection) -> None:
            metadata = sa.MetaData()
            columns = [
                build_column(name, d, primary_key=True if implicit_id and name == "id" else None)
                for name, d in definitions.items()
            ]
            new = sa.Table(table, metadata, *columns)

            if keys.keys:
                if keys.primary:
                    new.append_constraint(sa.PrimaryKeyConstraint(*keys.keys, name=keys.key_name or None))
                elif keys.unique:
                    new.append_constraint(sa.UniqueConstraint(*keys.keys, name=keys.key_name or None))
                else:
                    index_name = keys.key_name or f"{table}_{'_'.join(keys.keys)}"
                    sa.Index(index_name, *(new.c[key] for key in keys.keys))

            if fk.field:
                if fk.reference_table != table:
                    sa.Table(fk.reference_table, metadata, autoload_with=connection)
                new.append_constraint(
                    sa.ForeignKeyConstraint(
                        [fk.field],
                        [f"{fk.reference_table}.{fk.reference_field}"],
                        name=fk.fk_name or None,
                        ondelete=fk.on_delete or None,
                        onupdate=fk.on_update or None,
                    )
                )

            new.create(connection, checkfirst=True)

        self._with_connection("new_table", create)
        logger.info("Created table %s", table)
        return True

    def remove_table(self, table: str) -> bool:
        self._with_connection(
            "remove_table",
            lambda conn: sa.Table(table, sa.MetaData()).drop(conn, checkfirst=True),
        )
        logger.info("Dropped table %s", table)
        return True

    def add_column_to_table(self, table: str, fields: FieldsLike) -> bool:
        def add(connection: Connection) -> None:
            operations = _operations(connection)
            for name, definition in _definitions(fields).items():
                operations.add_column(table, build_column(name, definition))

        self._with_connection("add_column_to_table", add)
        logger.info("Added columns %s to %s", ", ".join(fields), table)
        return True

    def remove_column_from_table(self, table: str, fields: str | Sequence[str]) -> bool:
        names = [f.strip() for f in fields.split(",")] if isinstance(fields, str) else list(fields)

        def drop(connection: Connection) -> None:
            with _operations(connection).batch_alter_table(table) as batch:
                for name in names:
                    batch.drop_column(name)

        self._with_connection("remove_column_from_table", drop)
        logger.info("Dropped columns %s from %s", ", ".join(names), table)
        return True

    def update_table_name(self, old_name: str, new_name: str) -> bool:
        self._with_connection(
            "update_table_name",
            lambda conn: _operations(conn).rename_table(old_name, new_name),
        )
        logger.info("Renamed table %s to %s", old_name, new_name)
        return True

    def modify_column_infos(self, table: str, fields: FieldsLike) -> bool:
        """Alter existing columns; a definition's ``name`` renames the column."""
        definitions = _definitions(fields)

        def alter(connection: Connection) -> None:
            with _operations(connection).batch_alter_table(table) as batch:
                for name, definition in definitions.items():
                    batch.alter_column(
                        name,
                        new_column_name=definition.name if definition.name and definition.name != name else None,
                        type_=column_type(definition, name),
                        nullable=definition.null,
                        server_default=False if definition.default is None else str(definition.default),
                    )

        self._with_connection("modify_column_infos", alter)
        logger.info("Modified columns %s on %s", ", ".join(definitions), table)
        return True

    def new_database(self, db_name: str) -> bool:
        self._database_ddl("new_database", "CREATE DATABASE", db_name)
        logger.info("Created database %s", db_name)
        return True

    def remove_database(self, db_name: str) -> bool:
        self._database_ddl("remove_database", "DROP DATABASE", db_name)
        logger.info("Dropped database %s", db_name)
        return True

    def drop_primary_key(self, table: str) -> bool:
        def drop(connection: Connection) -> None:
            # SQLite reports primary keys without a name; name the reflected
            # one so the batch copy can drop it while rebuilding the table.
            existing = sa.Table(table, sa.MetaData(), autoload_with=connection)
            name = existing.primary_key.name or f"pk_{table}"
            existing.primary_key.name = name
            with _operations(connection).batch_alter_table(table, copy_from=existing) as batch:
                batch.drop_constraint(name, type_="primary")

        self._with_connection("drop_primary_key", drop)
        logger.info("Dropped primary key of %s", table)
        return True

    def drop_key(self, table: str, key_name: str, prefix_key_name: bool = True) -> bool:
        name = f"{table}_{key_name}" if prefix_key_name else key_name
        self._with_connection(
            "drop_key",
            lambda conn: _operations(conn).drop_index(name, table_name=table),
        )
        logger.info("Dropped key %s on %s", name, table)
        return True

    def drop_foreign_key(self, table: str, foreign_key_name: str) -> bool:
        def drop(connection: Connection) -> None:
            with _operations(connection).batch_alter_table(table) as batch:
                batch.drop_constraint(foreign_key_name, type_="foreignkey")

        self._with_connection("drop_foreign_key", drop)
        logger.info("Dropped foreign key %s on %s", foreign_key_name, table)
        return True

    def _database_ddl(self, operation: str, verb: str, db_name: str) -> None:
        def execute(connection: Connection) -> None:
            quoted = connection.dialect.identifier_preparer.quote(db_name)
            logger.debug("%s %s", verb, quoted)
            connection.execute(sa.text(f"{verb} {quoted}"))

        self._with_autocommit(operation, execute)
