"""Generic CRUD, search and schema helper on top of SQLAlchemy."""

from commonmodel.contracts import (
    FieldDefinition,
    ForeignKeyDefinition,
    JoinClause,
    KeyDefinition,
    QueryDescriptor,
    QueryOptions,
)
from commonmodel.models import CommonModel
from commonmodel.query import QueryComposer

__all__ = [
    "CommonModel",
    "FieldDefinition",
    "ForeignKeyDefinition",
    "JoinClause",
    "KeyDefinition",
    "QueryComposer",
    "QueryDescriptor",
    "QueryOptions",
]
