from .query import FetchMode, JoinClause, QueryDescriptor, QueryOptions, RawFragment
from .schema import FieldDefinition, ForeignKeyDefinition, KeyDefinition

__all__ = [
    "FetchMode",
    "FieldDefinition",
    "ForeignKeyDefinition",
    "JoinClause",
    "KeyDefinition",
    "QueryDescriptor",
    "QueryOptions",
    "RawFragment",
]
