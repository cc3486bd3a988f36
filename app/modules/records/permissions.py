"""
Role and ownership checks for declared models.

``allow`` is deliberately pure: it never touches storage. Callers that do not
have the candidate record yet may ask without one (a pre-check on role
alone) and ask again once the row is fetched.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.config.permissions_config import (
    ALL_OPERATION,
    CRUD_OPERATIONS,
    OWNERSHIP_SCOPED_OPERATIONS,
)


def _token(operation) -> str:
    return getattr(operation, "value", operation)


def _granted(role: Optional[str], policy: Mapping[str, Iterable[Any]]) -> List[str]:
    if not role or not policy:
        return []
    return [_token(op) for op in policy.get(role) or []]


def allow(
    role: Optional[str],
    operation,
    policy: Mapping[str, Iterable[Any]],
    owner_field: Optional[str] = None,
    record: Optional[Dict[str, Any]] = None,
    actor_id: Optional[str] = None,
) -> bool:
    """Decide whether an actor holding role may perform operation."""
    operation = _token(operation)
    if operation not in CRUD_OPERATIONS:
        raise ValueError(f"Cannot check operation {operation!r}")

    if not actor_id or not role:
        return False

    granted = _granted(role, policy)
    if not granted:
        return False

    # "all" overrides ownership, even for update and delete
    if ALL_OPERATION in granted:
        return True

    if operation not in granted:
        return False

    if operation in OWNERSHIP_SCOPED_OPERATIONS and owner_field:
        if record is None:
            return True
        return record.get(owner_field) == actor_id
    return True


def granted_operations(role: Optional[str], policy: Mapping[str, Iterable[Any]]) -> List[str]:
    """Concrete operations a role holds, with "all" expanded."""
    granted = _granted(role, policy)
    if ALL_OPERATION in granted:
        return list(CRUD_OPERATIONS)
    return [op for op in CRUD_OPERATIONS if op in granted]
