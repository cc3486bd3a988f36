"""
Permissions Configuration
Defines the operation vocabulary used by model access policies and the
identifier rules every declared model, table and field name must follow.
"""
import re

# Operations a policy may grant. "all" is a superset token and is never
# requested on its own.
ALL_OPERATION = "all"
CRUD_OPERATIONS = ["create", "read", "update", "delete"]

# Operations whose decision depends on record ownership when a model
# declares an owner field
OWNERSHIP_SCOPED_OPERATIONS = {"update", "delete"}

# Columns every published table carries, maintained by the server
ID_COLUMN = "id"
CREATED_AT_COLUMN = "created_at"
UPDATED_AT_COLUMN = "updated_at"
RESERVED_COLUMNS = {ID_COLUMN, CREATED_AT_COLUMN, UPDATED_AT_COLUMN}

# Path segments under the API prefix that are owned by fixed routers
RESERVED_ROUTE_SEGMENTS = {"models", "auth"}

# Only these characters may ever be interpolated into statement text
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
IDENTIFIER_MAX_LENGTH = 63


def is_valid_identifier(value: str) -> bool:
    """True if value may be used as a table or column name"""
    return (
        isinstance(value, str)
        and len(value) <= IDENTIFIER_MAX_LENGTH
        and IDENTIFIER_PATTERN.match(value) is not None
    )


def get_permission_matrix(declarations, role: str):
    """
    Returns the effective operations a role holds on each model
    Format: {
        "role": "Manager",
        "models": [
            {"name": "Invoice", "route": "invoice", "operations": ["create", "read", "update"]},
            ...
        ]
    }
    """
    from app.modules.records.permissions import granted_operations

    models = []
    for declaration in declarations:
        models.append({
            "name": declaration.name,
            "route": declaration.route_segment,
            "operations": granted_operations(role, declaration.policy),
        })
    return {
        "role": role,
        "models": models
    }
