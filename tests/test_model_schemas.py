import pytest
from pydantic import ValidationError

from app.modules.models.schemas import FieldType, ModelDeclaration


def _declaration(**overrides):
    data = {
        "name": "Invoice",
        "fields": [{"name": "title", "type": "string"}],
        "policy": {"Admin": ["all"]},
    }
    data.update(overrides)
    return ModelDeclaration.model_validate(data)


def test_defaults_and_derived_names():
    declaration = _declaration()
    assert declaration.physical_table == "invoices"
    assert declaration.route_segment == "invoice"
    assert declaration.fields[0].type == FieldType.STRING
    assert declaration.fields[0].required is False
    assert declaration.fields[0].unique is False


def test_table_name_override():
    assert _declaration(table_name="billing_docs").physical_table == "billing_docs"


def test_camel_case_keys_accepted():
    declaration = ModelDeclaration.model_validate({
        "name": "Invoice",
        "tableName": "billing_docs",
        "fields": [{"name": "title", "type": "string"}],
        "ownerField": "createdBy",
        "rbac": {"Manager": ["update"]},
    })
    assert declaration.physical_table == "billing_docs"
    assert declaration.owner_field == "createdBy"
    assert [op.value for op in declaration.policy["Manager"]] == ["update"]
    assert _declaration(physicalName="docs").table_name == "docs"


def test_policy_duplicates_removed():
    declaration = _declaration(policy={"Manager": ["read", "read", "update"]})
    assert [op.value for op in declaration.policy["Manager"]] == ["read", "update"]


def test_relation_is_accepted():
    declaration = _declaration(fields=[
        {"name": "customer", "type": "string", "relation": {"model": "Customer", "field": "id"}},
    ])
    assert declaration.fields[0].relation.model == "Customer"


@pytest.mark.parametrize("overrides", [
    {"name": ""},
    {"name": "in voice"},
    {"name": "Invoice;drop"},
    {"name": "Models"},
    {"name": "auth"},
    {"table_name": 'x"; DROP TABLE users; --'},
    {"fields": [{"name": "id", "type": "string"}]},
    {"fields": [{"name": "created_at", "type": "date"}]},
    {"fields": [{"name": "a", "type": "string"}, {"name": "a", "type": "number"}]},
    {"fields": [{"name": "a", "type": "decimal"}]},
    {"fields": [{"name": "a", "type": "number", "default": "ten"}]},
    {"fields": [{"name": "a", "type": "number", "default": True}]},
    {"fields": [{"name": "a", "type": "boolean", "default": "yes"}]},
    {"fields": [{"name": "a", "type": "number", "default": float("nan")}]},
    {"fields": [{"name": "a", "type": "number", "default": float("inf")}]},
    {"owner": "title"},
    {"fields": [{"name": "a", "type": "date", "default": "not a date"}]},
    {"owner_field": "title"},
    {"owner_field": "id"},
    {"owner_field": "owner-id"},
    {"policy": {"Admin": ["everything"]}},
])
def test_invalid_declarations_rejected(overrides):
    with pytest.raises(ValidationError):
        _declaration(**overrides)


def test_missing_fields_rejected():
    with pytest.raises(ValidationError):
        ModelDeclaration.model_validate({"name": "Invoice"})
