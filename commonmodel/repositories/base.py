import logging
from typing import Any, Callable, Sequence, TypeVar

from opentelemetry import trace
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.sql import Executable

from commonmodel.db.session import autocommit_scope, connection_scope
from commonmodel.query.composer import ComposedQuery, QueryComposer, extract

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")


class BaseTableRepository:
    """
    Shared plumbing for repositories that work on named tables.

    ``bind`` is either an Engine (one short transaction per call) or a
    Connection the caller already owns.
    """

    def __init__(self, bind: Engine | Connection, composer: QueryComposer | None = None):
        self._bind = bind
        self._composer = composer or QueryComposer()

    @property
    def bind(self) -> Engine | Connection:
        return self._bind

    def _run(
        self,
        operation: str,
        statement: Executable,
        handle: Callable[[CursorResult[Any]], T],
        parameters: Sequence[dict[str, Any]] | None = None,
    ) -> T:
        """Execute one statement and read its result before the connection is released."""

        def work(connection: Connection) -> T:
            logger.debug("%s: %s", operation, statement)
            if parameters is None:
                return handle(connection.execute(statement))
            return handle(connection.execute(statement, list(parameters)))

        return self._with_connection(operation, work)

    def _with_connection(self, operation: str, work: Callable[[Connection], T]) -> T:
        with tracer.start_as_current_span(f"commonmodel.{operation}"):
            with connection_scope(self._bind) as connection:
                return work(connection)

    def _with_autocommit(self, operation: str, work: Callable[[Connection], T]) -> T:
        with tracer.start_as_current_span(f"commonmodel.{operation}"):
            with autocommit_scope(self._bind) as connection:
                return work(connection)

    def _fetch(self, operation: str, query: ComposedQuery) -> Any:
        return self._run(operation, query.statement, lambda result: extract(result, query.mode))

    def _scalar(self, operation: str, statement: Executable) -> Any:
        return self._run(operation, statement, lambda result: result.scalar_one())
