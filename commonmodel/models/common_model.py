from __future__ import annotations

from commonmodel.db.session import EngineRegistry
from commonmodel.repositories.query_repository import QueryRepository
from commonmodel.repositories.schema_repository import SchemaRepository


class CommonModel(QueryRepository, SchemaRepository):
    """
    One object for row access and schema management on a single bind.

    Build it from an explicit engine or connection, or from a connection
    group name resolved through the settings::

        model = CommonModel.from_group("default")
        users = model.lists("users", where={"status": 1}, limit=10)
    """

    @classmethod
    def from_group(cls, group: str | None = None, registry: EngineRegistry | None = None) -> CommonModel:
        if registry is None:
            from commonmodel.ioc.container import container

            registry = container.engine_registry()
        return cls(registry.get(group))
