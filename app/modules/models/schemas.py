from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum
import math

from app.config.permissions_config import (
    RESERVED_COLUMNS,
    RESERVED_ROUTE_SEGMENTS,
    is_valid_identifier,
)


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    JSON = "json"


class Operation(str, Enum):
    ALL = "all"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class FieldRelation(BaseModel):
    # Accepted and persisted, not enforced
    model: str
    field: str


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 string (or pass through a datetime)"""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise ValueError(f"expected an ISO-8601 datetime, got {type(value).__name__}")


def coerce_value(field_type: FieldType, value: Any) -> Any:
    """Check a value against a field type and return its storage form. Raises ValueError."""
    if value is None:
        return None
    if field_type == FieldType.STRING:
        if not isinstance(value, str):
            raise ValueError("expected a string")
        return value
    if field_type == FieldType.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("expected a number")
        if not math.isfinite(value):
            raise ValueError("expected a finite number")
        return value
    if field_type == FieldType.BOOLEAN:
        if not isinstance(value, bool):
            raise ValueError("expected a boolean")
        return value
    if field_type == FieldType.DATE:
        try:
            return parse_datetime(value)
        except (TypeError, ValueError):
            raise ValueError("expected an ISO-8601 datetime")
    return value


class FieldSpec(BaseModel):
    name: str
    type: FieldType
    required: bool = False
    unique: bool = False
    default: Optional[Any] = None
    relation: Optional[FieldRelation] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not is_valid_identifier(v):
            raise ValueError(f"Invalid field name: {v!r}")
        if v in RESERVED_COLUMNS:
            raise ValueError(f"Field name {v!r} is reserved")
        return v

    @model_validator(mode="after")
    def check_default(self):
        if self.default is not None:
            try:
                coerce_value(self.type, self.default)
            except ValueError as e:
                raise ValueError(f"Default for field {self.name!r}: {e}")
        return self


class ModelDeclaration(BaseModel):
    # camelCase keys are accepted as written by the model editor; anything else is an error
    model_config = ConfigDict(extra="forbid")

    name: str
    table_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("table_name", "tableName", "physicalName")
    )
    fields: List[FieldSpec]
    owner_field: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("owner_field", "ownerField")
    )
    policy: Dict[str, List[Operation]] = Field(
        default_factory=dict, validation_alias=AliasChoices("policy", "rbac")
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not is_valid_identifier(v):
            raise ValueError(f"Invalid model name: {v!r}")
        if v.lower() in RESERVED_ROUTE_SEGMENTS:
            raise ValueError(f"Model name {v!r} collides with a reserved route")
        return v

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_identifier(v):
            raise ValueError(f"Invalid table name: {v!r}")
        return v

    @field_validator("policy")
    @classmethod
    def validate_policy(cls, v: Dict[str, List[Operation]]) -> Dict[str, List[Operation]]:
        policy = {}
        for role, operations in v.items():
            if not role.strip():
                raise ValueError("Policy roles must be non-empty")
            policy[role] = list(dict.fromkeys(operations))
        return policy

    @model_validator(mode="after")
    def validate_columns(self):
        seen = set()
        for spec in self.fields:
            if spec.name in seen:
                raise ValueError(f"Duplicate field name: {spec.name!r}")
            seen.add(spec.name)
        if self.owner_field is not None:
            if not is_valid_identifier(self.owner_field) or self.owner_field in RESERVED_COLUMNS:
                raise ValueError(f"Invalid owner field: {self.owner_field!r}")
            if self.owner_field in seen:
                raise ValueError(f"Owner field {self.owner_field!r} collides with a declared field")
        return self

    @property
    def physical_table(self) -> str:
        return self.table_name or f"{self.name.lower()}s"

    @property
    def route_segment(self) -> str:
        return self.name.lower()

    def get_field(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None


class ModelSaveResponse(BaseModel):
    message: str
    model: ModelDeclaration


class ModelPublishResponse(BaseModel):
    message: str
    model: ModelDeclaration
    route: str
