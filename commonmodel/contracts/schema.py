from typing import Any, Optional

from pydantic import Field

from commonmodel.contracts.base import _Base


class FieldDefinition(_Base):
    type: str = Field(min_length=1)
    # VARCHAR length, or "precision,scale" for DECIMAL/NUMERIC
    constraint: int | str | None = None
    unsigned: bool = False
    null: bool = False
    default: Any = None
    auto_increment: bool = False
    unique: bool = False
    primary_key: bool = False
    # Target name when renaming through modify_column_infos
    name: Optional[str] = None


class KeyDefinition(_Base):
    keys: list[str] = Field(default_factory=list)
    primary: bool = False
    unique: bool = False
    key_name: str = ""


class ForeignKeyDefinition(_Base):
    field: str = ""
    reference_table: str = ""
    reference_field: str = ""
    on_delete: str = ""
    on_update: str = ""
    fk_name: str = ""
