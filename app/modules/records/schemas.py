from decimal import Decimal
from typing import Any, Dict, List, Mapping

from fastapi import HTTPException, status

from app.config.permissions_config import RESERVED_COLUMNS
from app.modules.models.schemas import ModelDeclaration, coerce_value


def strip_reserved(declaration: ModelDeclaration, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop server-maintained columns (id, timestamps, owner field) from client input"""
    blocked = set(RESERVED_COLUMNS)
    if declaration.owner_field:
        blocked.add(declaration.owner_field)
    return {key: value for key, value in payload.items() if key not in blocked}


def validate_payload(declaration: ModelDeclaration, payload: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Check client values against the declared fields and return them in storage form"""
    errors: List[str] = []
    values: Dict[str, Any] = {}

    for key, value in payload.items():
        spec = declaration.get_field(key)
        if spec is None:
            errors.append(f"Unknown field: {key}")
            continue
        if value is None and spec.required:
            errors.append(f"Field {key} is required")
            continue
        try:
            values[key] = coerce_value(spec.type, value)
        except ValueError as e:
            errors.append(f"Field {key}: {e}")

    if not partial:
        for spec in declaration.fields:
            if spec.required and spec.default is None and spec.name not in payload:
                errors.append(f"Field {spec.name} is required")

    if errors:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=errors)
    return values


def serialize_record(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a result row to JSON-friendly values"""
    record = {}
    for key, value in row.items():
        if isinstance(value, Decimal):
            value = int(value) if value == value.to_integral_value() else float(value)
        record[key] = value
    return record
