"""Active permission table with whole-table atomic swap.

Readers call get_permission_table() and work on the returned reference for the
whole evaluation. Writers build a complete replacement, validate it and swap
the module-level reference under a lock. Entries are never mutated in place,
so a concurrent reader sees either the old table or the new one.
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from types import MappingProxyType

from pydantic import ValidationError as PydanticValidationError

from ..schemas.permission import PermissionEntry, PermissionTableDocument, RoleDocument
from .rbac_contract import (
    ROLE_PERMISSIONS,
    PermissionTable,
    ResourcePermission,
    Role,
    RolePermissionSet,
    validate_permission_table,
)

logger = logging.getLogger("projecthub.permission_table")

_active_table: PermissionTable = ROLE_PERMISSIONS
_swap_lock = threading.Lock()


def get_permission_table() -> PermissionTable:
    return _active_table


def replace_permission_table(table: PermissionTable) -> PermissionTable:
    """Validate and install a complete replacement table.

    Returns the previously active table.

    Raises:
        RuntimeError: If the replacement fails validation (active table unchanged)
    """
    global _active_table

    validate_permission_table(table)
    frozen = MappingProxyType(dict(table))

    with _swap_lock:
        previous = _active_table
        _active_table = frozen

    logger.info("permission_table_swapped roles=%d", len(frozen))
    return previous


def reset_permission_table() -> None:
    """Restore the compiled-in default table."""
    global _active_table

    with _swap_lock:
        _active_table = ROLE_PERMISSIONS
    logger.info("permission_table_reset")


def build_permission_table(document: PermissionTableDocument) -> PermissionTable:
    table: dict[Role, RolePermissionSet] = {}
    for role, role_doc in document.roles.items():
        table[role] = RolePermissionSet(
            role=role,
            description=role_doc.description,
            permissions=tuple(
                ResourcePermission(resource=entry.resource, actions=tuple(entry.actions))
                for entry in role_doc.permissions
            ),
        )
    return MappingProxyType(table)


def load_permission_table(path: str | Path) -> PermissionTable:
    """Read a JSON permission table from disk and make it the active table.

    Raises:
        ValueError: If the file is not valid JSON or does not match the table shape
        RuntimeError: If the table is incomplete (see validate_permission_table)
    """
    source = Path(path)
    raw = source.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Permission table {source} is malformed JSON: {exc}") from exc

    try:
        document = PermissionTableDocument.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValueError(f"Permission table {source} has an invalid shape: {exc}") from exc

    table = build_permission_table(document)
    replace_permission_table(table)
    logger.info("permission_table_loaded path=%s", source)
    return table


def dump_permission_table(table: PermissionTable | None = None) -> dict:
    """JSON-ready document for ``table`` (default: the active table), loadable by load_permission_table."""
    source = table if table is not None else get_permission_table()
    document = PermissionTableDocument(
        roles={
            role: RoleDocument(
                description=role_set.description,
                permissions=[
                    PermissionEntry.from_resource_permission(entry)
                    for entry in role_set.permissions
                ],
            )
            for role, role_set in source.items()
        }
    )
    return document.model_dump(mode="json")
