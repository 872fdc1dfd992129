"""
RBAC contract - role, resource and action enumerations plus the default
permission table.

This module is the single source of truth for:
- The closed role / resource / action sets
- Which actions each role holds on each resource
- Which roles may sign off at each approval level
- The monetary tiers that select an expenditure's approval chain

HARD RULES:
- No implicit permissions: "manage" does not imply any other action
- No inheritance between roles, every row is spelled out
- Every role has exactly one entry per resource (empty tuple means "nothing")

The table is validated when the module is imported (fail-fast).
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Final


# ============================================================================
# CLOSED ENUMERATIONS
# ============================================================================

class Role(str, Enum):
    ADMIN = "admin"
    PROJECT_MANAGER = "project_manager"
    TECHNICAL_TEAM = "technical_team"
    FINANCE = "finance"
    FINANCE_OFFICER = "finance_officer"
    AUDITOR = "auditor"


class Resource(str, Enum):
    TASKS = "tasks"
    PROJECTS = "projects"
    EXPENDITURES = "expenditures"
    DOCUMENTS = "documents"
    USERS = "users"
    REPORTS = "reports"
    BUDGETS = "budgets"
    AUDIT_LOGS = "audit_logs"
    SETTINGS = "settings"
    ASSETS = "assets"
    TEAM = "team"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    EXPORT = "export"
    MANAGE = "manage"


class ApprovalLevel(str, Enum):
    """Organisational sign-off levels (not resource actions)."""
    TEAM_LEAD = "team_lead"
    PROJECT_MANAGER = "project_manager"
    FINANCE_OFFICER = "finance_officer"
    ADMIN = "admin"


class ApprovalStage(str, Enum):
    """Stages an expenditure passes through, in traversal order."""
    TEAM_LEAD = "team_lead"
    PROJECT_MANAGER = "project_manager"
    ACCOUNTS = "accounts"
    ADMIN = "admin"


ALL_ROLES: Final[frozenset[str]] = frozenset(role.value for role in Role)
ALL_RESOURCES: Final[frozenset[str]] = frozenset(resource.value for resource in Resource)
ALL_ACTIONS: Final[frozenset[str]] = frozenset(action.value for action in Action)
ALL_APPROVAL_LEVELS: Final[frozenset[str]] = frozenset(level.value for level in ApprovalLevel)


# ============================================================================
# TABLE SHAPES
# ============================================================================

@dataclass(frozen=True)
class ResourcePermission:
    resource: Resource
    actions: tuple[Action, ...]

    def allows(self, action: Action) -> bool:
        return action in self.actions


@dataclass(frozen=True)
class RolePermissionSet:
    role: Role
    description: str
    permissions: tuple[ResourcePermission, ...]

    def entry_for(self, resource: Resource) -> ResourcePermission | None:
        for entry in self.permissions:
            if entry.resource == resource:
                return entry
        return None


PermissionTable = Mapping[Role, RolePermissionSet]


@dataclass(frozen=True)
class ExpenditureApprovalTiers:
    """Upper bounds (exclusive) of the short and medium approval chains, in minor units."""
    tier1: int
    tier2: int

    def __post_init__(self) -> None:
        for name, value in (("tier1", self.tier1), ("tier2", self.tier2)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} threshold must be an integer amount of minor units")
        if self.tier1 <= 0:
            raise ValueError("tier1 threshold must be greater than 0")
        if self.tier2 <= self.tier1:
            raise ValueError("tier2 threshold must be greater than tier1 threshold")


def _row(resource: Resource, *actions: Action) -> ResourcePermission:
    return ResourcePermission(resource=resource, actions=tuple(actions))


A = Action
R = Resource


# ============================================================================
# DEFAULT ROLE -> RESOURCE -> ACTIONS TABLE
# ============================================================================

ROLE_PERMISSIONS: Final[PermissionTable] = MappingProxyType({
    Role.ADMIN: RolePermissionSet(
        role=Role.ADMIN,
        description="Full system access and management",
        permissions=(
            _row(R.TASKS, A.CREATE, A.READ, A.UPDATE, A.DELETE, A.APPROVE, A.EXPORT, A.MANAGE),
            _row(R.PROJECTS, A.CREATE, A.READ, A.UPDATE, A.DELETE, A.APPROVE, A.EXPORT, A.MANAGE),
            _row(R.EXPENDITURES, A.CREATE, A.READ, A.UPDATE, A.DELETE, A.APPROVE, A.EXPORT, A.MANAGE),
            _row(R.DOCUMENTS, A.CREATE, A.READ, A.UPDATE, A.DELETE, A.EXPORT, A.MANAGE),
            _row(R.USERS, A.CREATE, A.READ, A.UPDATE, A.DELETE, A.MANAGE),
            _row(R.REPORTS, A.CREATE, A.READ, A.EXPORT, A.MANAGE),
            _row(R.BUDGETS, A.CREATE, A.READ, A.UPDATE, A.DELETE, A.APPROVE, A.EXPORT, A.MANAGE),
            _row(R.AUDIT_LOGS, A.READ, A.EXPORT, A.MANAGE),
            _row(R.SETTINGS, A.READ, A.UPDATE, A.MANAGE),
            _row(R.ASSETS, A.CREATE, A.READ, A.UPDATE, A.DELETE, A.MANAGE),
            _row(R.TEAM, A.READ, A.MANAGE),
        ),
    ),
    Role.PROJECT_MANAGER: RolePermissionSet(
        role=Role.PROJECT_MANAGER,
        description="Manage projects, tasks, and team members",
        permissions=(
            _row(R.TASKS, A.CREATE, A.READ, A.UPDATE, A.APPROVE, A.EXPORT),
            _row(R.PROJECTS, A.CREATE, A.READ, A.UPDATE, A.EXPORT),
            _row(R.EXPENDITURES, A.CREATE, A.READ, A.APPROVE),
            _row(R.DOCUMENTS, A.CREATE, A.READ, A.UPDATE, A.EXPORT),
            _row(R.USERS, A.READ),
            _row(R.REPORTS, A.CREATE, A.READ, A.EXPORT),
            _row(R.BUDGETS, A.READ, A.UPDATE),
            _row(R.AUDIT_LOGS, A.READ),
            _row(R.SETTINGS, A.READ),
            _row(R.ASSETS, A.READ, A.UPDATE),
            _row(R.TEAM, A.READ),
        ),
    ),
    Role.TECHNICAL_TEAM: RolePermissionSet(
        role=Role.TECHNICAL_TEAM,
        description="Execute tasks and update progress",
        permissions=(
            _row(R.TASKS, A.READ, A.UPDATE),
            _row(R.PROJECTS, A.READ),
            _row(R.EXPENDITURES, A.CREATE, A.READ),
            _row(R.DOCUMENTS, A.CREATE, A.READ),
            _row(R.USERS, A.READ),
            _row(R.REPORTS, A.READ),
            _row(R.BUDGETS, A.READ),
            _row(R.AUDIT_LOGS),
            _row(R.SETTINGS, A.READ),
            _row(R.ASSETS, A.READ),
            _row(R.TEAM, A.READ),
        ),
    ),
    Role.FINANCE: RolePermissionSet(
        role=Role.FINANCE,
        description="Manage finances, budgets, and expenditures",
        permissions=(
            _row(R.TASKS, A.READ),
            _row(R.PROJECTS, A.READ),
            _row(R.EXPENDITURES, A.READ, A.APPROVE, A.EXPORT, A.MANAGE),
            _row(R.DOCUMENTS, A.READ, A.EXPORT),
            _row(R.USERS, A.READ),
            _row(R.REPORTS, A.CREATE, A.READ, A.EXPORT),
            _row(R.BUDGETS, A.CREATE, A.READ, A.UPDATE, A.APPROVE, A.EXPORT, A.MANAGE),
            _row(R.AUDIT_LOGS, A.READ, A.EXPORT),
            _row(R.SETTINGS, A.READ),
            _row(R.ASSETS, A.READ, A.UPDATE),
            _row(R.TEAM, A.READ),
        ),
    ),
    Role.FINANCE_OFFICER: RolePermissionSet(
        role=Role.FINANCE_OFFICER,
        description="Review and approve financial transactions",
        permissions=(
            _row(R.TASKS, A.READ),
            _row(R.PROJECTS, A.READ),
            _row(R.EXPENDITURES, A.READ, A.APPROVE, A.EXPORT),
            _row(R.DOCUMENTS, A.READ),
            _row(R.USERS, A.READ),
            _row(R.REPORTS, A.READ, A.EXPORT),
            _row(R.BUDGETS, A.READ, A.APPROVE),
            _row(R.AUDIT_LOGS, A.READ),
            _row(R.SETTINGS, A.READ),
            _row(R.ASSETS, A.READ),
            _row(R.TEAM, A.READ),
        ),
    ),
    Role.AUDITOR: RolePermissionSet(
        role=Role.AUDITOR,
        description="View all records and audit trails",
        permissions=(
            _row(R.TASKS, A.READ, A.EXPORT),
            _row(R.PROJECTS, A.READ, A.EXPORT),
            _row(R.EXPENDITURES, A.READ, A.EXPORT),
            _row(R.DOCUMENTS, A.READ, A.EXPORT),
            _row(R.USERS, A.READ),
            _row(R.REPORTS, A.CREATE, A.READ, A.EXPORT),
            _row(R.BUDGETS, A.READ, A.EXPORT),
            _row(R.AUDIT_LOGS, A.READ, A.EXPORT, A.MANAGE),
            _row(R.SETTINGS, A.READ),
            _row(R.ASSETS, A.READ, A.EXPORT),
            _row(R.TEAM, A.READ),
        ),
    ),
})

del A, R


# ============================================================================
# APPROVAL SIGN-OFF
# ============================================================================

# Independent of the resource table: approving at the "project_manager" level
# does not require the projects/approve action.
APPROVAL_LEVEL_ROLES: Final[Mapping[ApprovalLevel, frozenset[Role]]] = MappingProxyType({
    ApprovalLevel.TEAM_LEAD: frozenset({Role.ADMIN, Role.PROJECT_MANAGER}),
    ApprovalLevel.PROJECT_MANAGER: frozenset({Role.ADMIN, Role.PROJECT_MANAGER}),
    ApprovalLevel.FINANCE_OFFICER: frozenset({Role.ADMIN, Role.FINANCE, Role.FINANCE_OFFICER}),
    ApprovalLevel.ADMIN: frozenset({Role.ADMIN}),
})

# Expenditure stages are signed off by the level they map to here.
APPROVAL_STAGE_LEVELS: Final[Mapping[ApprovalStage, ApprovalLevel]] = MappingProxyType({
    ApprovalStage.TEAM_LEAD: ApprovalLevel.TEAM_LEAD,
    ApprovalStage.PROJECT_MANAGER: ApprovalLevel.PROJECT_MANAGER,
    ApprovalStage.ACCOUNTS: ApprovalLevel.FINANCE_OFFICER,
    ApprovalStage.ADMIN: ApprovalLevel.ADMIN,
})

DEFAULT_EXPENDITURE_TIERS: Final[ExpenditureApprovalTiers] = ExpenditureApprovalTiers(
    tier1=100_000,
    tier2=500_000,
)

SHORT_APPROVAL_CHAIN: Final[tuple[ApprovalStage, ...]] = (
    ApprovalStage.TEAM_LEAD,
    ApprovalStage.ACCOUNTS,
)
MEDIUM_APPROVAL_CHAIN: Final[tuple[ApprovalStage, ...]] = (
    ApprovalStage.TEAM_LEAD,
    ApprovalStage.PROJECT_MANAGER,
    ApprovalStage.ACCOUNTS,
)
FULL_APPROVAL_CHAIN: Final[tuple[ApprovalStage, ...]] = (
    ApprovalStage.TEAM_LEAD,
    ApprovalStage.PROJECT_MANAGER,
    ApprovalStage.ACCOUNTS,
    ApprovalStage.ADMIN,
)


# ============================================================================
# HARD INVARIANTS - FAIL-FAST ENFORCEMENT
# ============================================================================

def validate_permission_table(table: Mapping[Role, RolePermissionSet]) -> None:
    """
    Validate a complete permission table.

    Checks that every role is present with a matching label, that every role
    lists every resource exactly once, and that action tuples hold only known
    actions without duplicates.

    Raises:
        RuntimeError: If any check fails (all problems are reported at once)
    """
    errors: list[str] = []

    for role in Role:
        if role not in table:
            errors.append(f"Role '{role.value}' has no permission set")

    for role, role_set in table.items():
        if role not in ALL_ROLES:
            errors.append(f"Invalid role in table: {role!r}")
            continue
        if role_set.role != role:
            errors.append(
                f"Role '{Role(role).value}' is keyed to a permission set labelled "
                f"'{getattr(role_set.role, 'value', role_set.role)}'"
            )

        seen: dict[str, int] = {}
        for entry in role_set.permissions:
            if entry.resource not in ALL_RESOURCES:
                errors.append(f"Role '{Role(role).value}' has invalid resource {entry.resource!r}")
                continue
            resource = Resource(entry.resource)
            seen[resource.value] = seen.get(resource.value, 0) + 1

            unknown = [action for action in entry.actions if action not in ALL_ACTIONS]
            if unknown:
                errors.append(
                    f"Role '{Role(role).value}' has invalid actions on '{resource.value}': {unknown}"
                )
            if len(set(entry.actions)) != len(entry.actions):
                errors.append(
                    f"Role '{Role(role).value}' lists duplicate actions on '{resource.value}'"
                )

        for resource in Resource:
            count = seen.get(resource.value, 0)
            if count == 0:
                errors.append(f"Role '{Role(role).value}' has no entry for '{resource.value}'")
            elif count > 1:
                errors.append(
                    f"Role '{Role(role).value}' has {count} entries for '{resource.value}'"
                )

    if errors:
        raise RuntimeError(
            "Permission table validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )


def _validate_contract() -> None:
    """Validate the compiled-in tables at module import time."""
    validate_permission_table(ROLE_PERMISSIONS)

    missing_levels = set(ApprovalLevel) - set(APPROVAL_LEVEL_ROLES)
    missing_stages = set(ApprovalStage) - set(APPROVAL_STAGE_LEVELS)
    if missing_levels or missing_stages:
        raise RuntimeError(
            "Approval contract validation failed: "
            f"levels without roles={sorted(level.value for level in missing_levels)}, "
            f"stages without level={sorted(stage.value for stage in missing_stages)}"
        )


# Run validation on import
_validate_contract()
