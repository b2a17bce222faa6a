import enum
from typing import Any, NewType

from pydantic import AliasChoices, Field

from commonmodel.contracts.base import _Base

# Column list, ON condition or ORDER BY text handed to the engine verbatim.
RawFragment = NewType("RawFragment", str)


class FetchMode(enum.Enum):
    ROWS = "rows"
    ROW = "row"


class JoinClause(_Base):
    table: str = Field(min_length=1)
    condition: RawFragment = Field(validation_alias=AliasChoices("condition", "cond"))
    join_type: str = Field(
        default="inner",
        validation_alias=AliasChoices("join_type", "joinType", "type"),
    )


class QueryOptions(_Base):
    is_reset: bool = False


class QueryDescriptor(_Base):
    """Everything one list query needs; built per call and thrown away."""

    table: str = Field(min_length=1)
    select: RawFragment = RawFragment("*")
    where: dict[str, Any] = Field(default_factory=dict)
    or_where: dict[str, Any] = Field(default_factory=dict)
    like: dict[str, Any] = Field(default_factory=dict)
    joins: list[JoinClause] = Field(default_factory=list)
    order: RawFragment = RawFragment("id ASC")
    limit: int = Field(default=0, ge=0)
    offset: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("offset", "pkCount", "pk_count"),
    )
    options: QueryOptions = Field(default_factory=QueryOptions)

    @property
    def mode(self) -> FetchMode:
        return FetchMode.ROW if self.options.is_reset else FetchMode.ROWS
