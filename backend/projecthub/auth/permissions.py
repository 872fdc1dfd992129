"""
Permission evaluator - pure functions over the active permission table.

Every function here is synchronous and side-effect free: the result depends
only on the arguments and the (read-only) table. Unknown roles, resources,
actions and levels are denied rather than raised, so malformed profile data
never crashes a capability check.

These checks are advisory for the presentation layer. Any store with
independent write access must enforce the same policy itself.
"""
from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from enum import Enum
from typing import TypeVar

from .permission_table import get_permission_table
from .rbac_contract import (
    APPROVAL_LEVEL_ROLES,
    APPROVAL_STAGE_LEVELS,
    DEFAULT_EXPENDITURE_TIERS,
    FULL_APPROVAL_CHAIN,
    MEDIUM_APPROVAL_CHAIN,
    SHORT_APPROVAL_CHAIN,
    Action,
    ApprovalLevel,
    ApprovalStage,
    ExpenditureApprovalTiers,
    Resource,
    ResourcePermission,
    Role,
)

PermissionOverrides = Mapping[Resource | str, Collection[Action | str]]

_E = TypeVar("_E", bound=Enum)


def _coerce(enum_cls: type[_E], value: object) -> _E | None:
    """Map a raw value onto a closed enumeration, or None if it is not a member."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _contains(actions: Iterable[Action | str], action: Action) -> bool:
    return any(_coerce(Action, candidate) is action for candidate in actions)


def _override_entry(
    overrides: PermissionOverrides | None, resource: Resource
) -> Collection[Action | str] | None:
    if not overrides:
        return None
    for key, actions in overrides.items():
        if _coerce(Resource, key) is resource:
            return actions
    return None


def has_permission(
    role: Role | str | None,
    resource: Resource | str,
    action: Action | str,
    overrides: PermissionOverrides | None = None,
) -> bool:
    """Check whether ``role`` may perform ``action`` on ``resource``.

    An override entry for ``resource`` replaces the role's entry entirely:
    the role table is not consulted even when the override grants less.
    """
    checked_role = _coerce(Role, role)
    checked_resource = _coerce(Resource, resource)
    checked_action = _coerce(Action, action)
    if checked_role is None or checked_resource is None or checked_action is None:
        return False

    override = _override_entry(overrides, checked_resource)
    if override is not None:
        return _contains(override, checked_action)

    role_set = get_permission_table().get(checked_role)
    if role_set is None:
        return False

    entry = role_set.entry_for(checked_resource)
    if entry is None:
        return False
    return entry.allows(checked_action)


def get_role_permissions(role: Role | str | None) -> list[ResourcePermission]:
    """Ordered permission entries for a role (capability summaries, not enforcement)."""
    checked_role = _coerce(Role, role)
    if checked_role is None:
        return []
    role_set = get_permission_table().get(checked_role)
    if role_set is None:
        return []
    return list(role_set.permissions)


def can_approve_at_level(role: Role | str | None, level: ApprovalLevel | ApprovalStage | str) -> bool:
    """Check organisational sign-off rights.

    Expenditure stage names are accepted too and resolved to the level that
    signs them off ("accounts" is signed off at the finance_officer level).
    """
    checked_role = _coerce(Role, role)
    if checked_role is None:
        return False

    checked_level = _coerce(ApprovalLevel, level)
    if checked_level is None:
        stage = _coerce(ApprovalStage, level)
        if stage is None:
            return False
        checked_level = APPROVAL_STAGE_LEVELS[stage]

    return checked_role in APPROVAL_LEVEL_ROLES.get(checked_level, frozenset())


def get_expenditure_approval_levels(
    amount: int,
    tiers: ExpenditureApprovalTiers | None = None,
) -> list[str]:
    """Ordered approval stages for an expenditure of ``amount`` minor currency units.

    Tier upper bounds are exclusive: an amount equal to a threshold falls into
    the next, longer chain.

    Raises:
        ValueError: If amount is not a non-negative integer
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError("amount must be an integer number of minor currency units")
    if amount < 0:
        raise ValueError("amount must not be negative")

    active_tiers = tiers or DEFAULT_EXPENDITURE_TIERS
    if amount < active_tiers.tier1:
        chain = SHORT_APPROVAL_CHAIN
    elif amount < active_tiers.tier2:
        chain = MEDIUM_APPROVAL_CHAIN
    else:
        chain = FULL_APPROVAL_CHAIN
    return [stage.value for stage in chain]


def is_admin(role: Role | str | None) -> bool:
    return _coerce(Role, role) is Role.ADMIN


def can_manage_users(role: Role | str | None) -> bool:
    return _coerce(Role, role) is Role.ADMIN


def can_verify_tasks(role: Role | str | None) -> bool:
    return _coerce(Role, role) in (Role.ADMIN, Role.PROJECT_MANAGER)


def can_access_route(
    role: Role | str | None,
    allowed_roles: Iterable[Role | str] | None = None,
    *,
    require_admin: bool = False,
) -> bool:
    """Role gate for a page: admin-only pages, role lists, or any signed-in role."""
    checked_role = _coerce(Role, role)
    if checked_role is None:
        return False
    if require_admin and checked_role is not Role.ADMIN:
        return False

    allowed = [_coerce(Role, candidate) for candidate in allowed_roles or ()]
    if not allowed:
        return True
    return checked_role in allowed
