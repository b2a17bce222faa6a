from .base import BaseTableRepository
from .query_repository import QueryRepository
from .schema_repository import SchemaRepository

__all__ = ["BaseTableRepository", "QueryRepository", "SchemaRepository"]
