from contextlib import contextmanager

import pytest
import sqlalchemy as sa
from sqlalchemy.dialects import mysql, postgresql
from sqlalchemy.exc import OperationalError

import commonmodel.repositories.base as repositories_base
from commonmodel.contracts.schema import FieldDefinition
from commonmodel.errors.application_errors import InvalidSchemaDefinition
from commonmodel.repositories.schema_repository import column_type

PRODUCT_FIELDS = {
    "id": {"type": "INT", "constraint": 11, "auto_increment": True},
    "name": {"type": "VARCHAR", "constraint": 100},
    "price": {"type": "DECIMAL", "constraint": "10,2", "null": True},
}


def _field_names(model, table):
    return [field["name"] for field in model.get_table_fields(table)]


class _RecordingConnection:
    def __init__(self):
        self.dialect = postgresql.dialect()
        self.statements = []

    def execute(self, statement):
        self.statements.append(str(statement))


class _RecordingTracer:
    def __init__(self):
        self.spans = []

    @contextmanager
    def start_as_current_span(self, name):
        self.spans.append(name)
        yield


@pytest.fixture
def server_connection(monkeypatch):
    connection = _RecordingConnection()

    @contextmanager
    def scope(bind):
        yield connection

    monkeypatch.setattr(repositories_base, "autocommit_scope", scope)
    return connection


def test_get_table_list(model):
    assert {"orders", "roles", "users"} <= set(model.get_table_list())


def test_get_table_fields(model):
    fields = {field["name"]: field for field in model.get_table_fields("roles")}

    assert fields["id"]["primary_key"] is True
    assert fields["name"]["primary_key"] is False
    assert fields["name"]["max_length"] == 50


def test_new_table_uses_id_as_primary_key(model):
    assert model.new_table("products", PRODUCT_FIELDS) is True

    assert "products" in model.get_table_list()
    fields = {field["name"]: field for field in model.get_table_fields("products")}
    assert fields["id"]["primary_key"] is True
    assert fields["name"]["max_length"] == 100
    assert fields["name"]["nullable"] is False
    assert fields["price"]["nullable"] is True
    assert model.create("products", {"name": "Lamp"}) == 1


def test_new_table_is_a_no_op_when_table_exists(model):
    model.new_table("products", PRODUCT_FIELDS)

    assert model.new_table("products", PRODUCT_FIELDS) is True


def test_new_table_with_index_then_drop_key(model, engine):
    model.new_table("products", PRODUCT_FIELDS, add_keys={"keys": ["name"]})

    assert [index["name"] for index in sa.inspect(engine).get_indexes("products")] == ["products_name"]

    assert model.drop_key("products", "name") is True
    assert sa.inspect(engine).get_indexes("products") == []


def test_new_table_with_composite_primary_key(model, engine):
    model.new_table(
        "memberships",
        {"user_id": {"type": "INT"}, "team_id": {"type": "INT"}},
        add_keys={"keys": ["user_id", "team_id"], "primary": True},
    )

    pk = sa.inspect(engine).get_pk_constraint("memberships")
    assert pk["constrained_columns"] == ["user_id", "team_id"]


def test_new_table_with_foreign_key(model, engine):
    model.new_table("products", PRODUCT_FIELDS)
    model.new_table(
        "reviews",
        {
            "id": {"type": "INT", "auto_increment": True},
            "product_id": {"type": "INT"},
            "body": {"type": "TEXT", "null": True},
        },
        foreign_key={
            "field": "product_id",
            "reference_table": "products",
            "reference_field": "id",
            "on_delete": "CASCADE",
        },
    )

    (foreign_key,) = sa.inspect(engine).get_foreign_keys("reviews")
    assert foreign_key["referred_table"] == "products"
    assert foreign_key["constrained_columns"] == ["product_id"]


def test_remove_table(model):
    model.new_table("products", PRODUCT_FIELDS)

    assert model.remove_table("products") is True
    assert "products" not in model.get_table_list()
    assert model.remove_table("products") is True


def test_add_column_to_table(model):
    assert model.add_column_to_table("users", {"nickname": {"type": "VARCHAR", "constraint": 50, "null": True}})

    assert "nickname" in _field_names(model, "users")


def test_remove_column_from_table_keeps_rows(model):
    assert model.remove_column_from_table("users", "password, updated_at") is True

    names = _field_names(model, "users")
    assert "password" not in names
    assert "updated_at" not in names
    assert model.count("users") == 4


def test_update_table_name(model):
    assert model.update_table_name("orders", "purchases") is True

    tables = model.get_table_list()
    assert "purchases" in tables
    assert "orders" not in tables
    assert model.count("purchases") == 5


def test_modify_column_infos_renames_and_retypes(model):
    model.modify_column_infos(
        "users",
        {"name": {"type": "VARCHAR", "constraint": 200, "name": "full_name", "null": True}},
    )

    fields = {field["name"]: field for field in model.get_table_fields("users")}
    assert "name" not in fields
    assert fields["full_name"]["max_length"] == 200
    assert model.select_one("users", {"id": 1})["full_name"] == "John Smith"


def test_unknown_column_type_is_rejected(model):
    with pytest.raises(InvalidSchemaDefinition, match="Unknown column type"):
        model.new_table("broken", {"id": {"type": "NOPE"}})

    assert "broken" not in model.get_table_list()


def test_drop_primary_key_rebuilds_the_table_with_its_rows(model, engine):
    model.new_table("products", PRODUCT_FIELDS)
    model.create("products", {"name": "Lamp", "price": 12.5})

    assert model.drop_primary_key("products") is True

    assert sa.inspect(engine).get_pk_constraint("products")["constrained_columns"] == []
    assert model.select_one("products", {"id": 1})["name"] == "Lamp"


def test_drop_primary_key_on_a_populated_table(model, engine):
    assert model.drop_primary_key("roles") is True

    assert sa.inspect(engine).get_pk_constraint("roles")["constrained_columns"] == []
    assert [row["name"] for row in model.lists("roles")] == ["admin", "editor"]


def test_drop_foreign_key(model, engine):
    model.new_table("products", PRODUCT_FIELDS)
    model.new_table(
        "reviews",
        {"id": {"type": "INT", "auto_increment": True}, "product_id": {"type": "INT"}},
        foreign_key={
            "field": "product_id",
            "reference_table": "products",
            "reference_field": "id",
            "fk_name": "fk_reviews_product",
        },
    )
    model.create("reviews", {"product_id": 1})

    assert model.drop_foreign_key("reviews", "fk_reviews_product") is True

    assert sa.inspect(engine).get_foreign_keys("reviews") == []
    assert model.count("reviews") == 1


def test_database_ddl_quotes_names_per_dialect(model, server_connection):
    assert model.new_database("reports") is True
    assert model.remove_database("Sales Archive") is True

    assert server_connection.statements == [
        "CREATE DATABASE reports",
        'DROP DATABASE "Sales Archive"',
    ]


def test_database_ddl_runs_inside_a_span(model, server_connection, monkeypatch):
    tracer = _RecordingTracer()
    monkeypatch.setattr(repositories_base, "tracer", tracer)

    model.remove_database("reports")

    assert tracer.spans == ["commonmodel.remove_database"]


def test_database_ddl_errors_come_from_the_engine(model):
    # SQLite has no CREATE DATABASE statement.
    with pytest.raises(OperationalError):
        model.new_database("reports")


def test_column_type_lengths_and_precision():
    varchar = column_type(FieldDefinition(type="varchar", constraint=20))
    decimal = column_type(FieldDefinition(type="DECIMAL", constraint="10,2"))
    integer = column_type(FieldDefinition(type="INT", constraint=11))

    assert isinstance(varchar, sa.String) and varchar.length == 20
    assert (decimal.precision, decimal.scale) == (10, 2)
    assert isinstance(integer, sa.Integer)


def test_column_type_unsigned_variant_for_mysql():
    type_ = column_type(FieldDefinition(type="INT", unsigned=True))

    assert type_.compile(dialect=mysql.dialect()) == "INTEGER UNSIGNED"


def test_column_type_rejects_bad_constraint():
    with pytest.raises(InvalidSchemaDefinition, match="Invalid constraint"):
        column_type(FieldDefinition(type="VARCHAR", constraint="long"), "name")
