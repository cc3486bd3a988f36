"""
SQLAlchemy Core statements for declared models.

A declaration is turned into a ``Table`` on a private ``MetaData`` each time it
is needed; no reflection, no ORM. Values always travel as bound parameters and
only allowlisted identifiers reach the statement text.
"""
import json
from typing import Any, Dict

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from app.config.permissions_config import (
    CREATED_AT_COLUMN,
    ID_COLUMN,
    UPDATED_AT_COLUMN,
    is_valid_identifier,
)
from app.modules.models.schemas import FieldSpec, FieldType, ModelDeclaration, parse_datetime


def column_type(field_type: FieldType):
    """Map a declared field type to a SQLAlchemy column type instance."""
    mapping = {
        FieldType.STRING: sa.Text(),
        FieldType.NUMBER: sa.Numeric(),
        FieldType.BOOLEAN: sa.Boolean(),
        FieldType.DATE: sa.DateTime(timezone=True),
        FieldType.JSON: sa.JSON().with_variant(JSONB(), "postgresql"),
    }
    return mapping[field_type]


def server_default(spec: FieldSpec):
    """
    Storage-level default for a field, or None.

    Strings, dates and JSON become plain ``str`` server defaults, which
    SQLAlchemy renders as quoted literals with embedded quotes escaped.
    Numbers are rendered from the coerced Python number and booleans from
    ``true()``/``false()``, so no client text reaches the DDL unquoted.
    """
    value = spec.default
    if value is None:
        return None
    if spec.type == FieldType.BOOLEAN:
        return sa.true() if value else sa.false()
    if spec.type == FieldType.NUMBER:
        number = int(value) if isinstance(value, int) else float(value)
        return sa.text(repr(number))
    if spec.type == FieldType.DATE:
        return parse_datetime(value).isoformat(sep=" ")
    if spec.type == FieldType.JSON:
        return json.dumps(value)
    return str(value)


def _check_identifier(name: str) -> str:
    if not is_valid_identifier(name):
        raise ValueError(f"Refusing to use {name!r} as an identifier")
    return name


def build_table(declaration: ModelDeclaration, metadata: sa.MetaData = None) -> sa.Table:
    """Build the physical table definition for a declaration."""
    metadata = metadata if metadata is not None else sa.MetaData()
    columns = [sa.Column(ID_COLUMN, sa.Text(), primary_key=True)]

    if declaration.owner_field:
        columns.append(sa.Column(_check_identifier(declaration.owner_field), sa.Text(), nullable=True))

    for spec in declaration.fields:
        columns.append(sa.Column(
            _check_identifier(spec.name),
            column_type(spec.type),
            nullable=not spec.required,
            unique=spec.unique,
            server_default=server_default(spec),
        ))

    columns.append(sa.Column(CREATED_AT_COLUMN, sa.DateTime(timezone=True), server_default=sa.func.now()))
    columns.append(sa.Column(UPDATED_AT_COLUMN, sa.DateTime(timezone=True), server_default=sa.func.now()))

    return sa.Table(_check_identifier(declaration.physical_table), metadata, *columns)


def select_all(table: sa.Table):
    return sa.select(table).order_by(table.c[CREATED_AT_COLUMN].desc())


def select_by_id(table: sa.Table, record_id: str):
    return sa.select(table).where(table.c[ID_COLUMN] == record_id)


def insert_record(table: sa.Table, values: Dict[str, Any]):
    return sa.insert(table).values(**_known(table, values))


def update_record(table: sa.Table, record_id: str, values: Dict[str, Any]):
    return sa.update(table)\
        .where(table.c[ID_COLUMN] == record_id)\
        .values(**_known(table, values))


def delete_record(table: sa.Table, record_id: str):
    return sa.delete(table).where(table.c[ID_COLUMN] == record_id)


def _known(table: sa.Table, values: Dict[str, Any]) -> Dict[str, Any]:
    unknown = [key for key in values if key not in table.c]
    if unknown:
        raise ValueError(f"Unknown columns for {table.name}: {', '.join(sorted(unknown))}")
    return values
