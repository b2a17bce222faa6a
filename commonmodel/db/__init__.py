from .session import (
    EngineRegistry,
    autocommit_scope,
    connection_scope,
    create_engine_for_url,
)

__all__ = [
    "EngineRegistry",
    "autocommit_scope",
    "connection_scope",
    "create_engine_for_url",
]
