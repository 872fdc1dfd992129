import logging
from dataclasses import dataclass, field

from ..auth import permissions
from ..auth.permissions import PermissionOverrides
from ..auth.rbac_contract import Action, Resource, ResourcePermission
from ..errors import PermissionError
from ..schemas.user_profile import UserProfile

logger = logging.getLogger("projecthub.rbac")


@dataclass(frozen=True)
class UserCapabilities:
    """Capability bundle for the signed-in user, evaluated once per profile.

    ``can`` honours the profile's custom permissions. The convenience flags
    for approving expenditures, creating projects and managing settings are
    role-table checks only.
    """

    user_role: str | None = None
    overrides: PermissionOverrides | None = None
    is_admin: bool = False
    can_manage_users: bool = False
    can_verify_tasks: bool = False
    can_approve_expenditures: bool = False
    can_create_projects: bool = False
    can_manage_settings: bool = False
    authenticated: bool = field(default=False, repr=False)

    @classmethod
    def anonymous(cls) -> "UserCapabilities":
        return cls()

    @classmethod
    def for_profile(cls, profile: UserProfile | None) -> "UserCapabilities":
        if profile is None:
            return cls.anonymous()

        role = profile.role
        return cls(
            user_role=role,
            overrides=profile.override_map(),
            is_admin=permissions.is_admin(role),
            can_manage_users=permissions.can_manage_users(role),
            can_verify_tasks=permissions.can_verify_tasks(role),
            can_approve_expenditures=permissions.has_permission(
                role, Resource.EXPENDITURES, Action.APPROVE
            ),
            can_create_projects=permissions.has_permission(
                role, Resource.PROJECTS, Action.CREATE
            ),
            can_manage_settings=permissions.has_permission(
                role, Resource.SETTINGS, Action.MANAGE
            ),
            authenticated=True,
        )

    def can(self, resource: Resource | str, action: Action | str) -> bool:
        if not self.authenticated:
            return False
        return permissions.has_permission(self.user_role, resource, action, self.overrides)

    def effective_permissions(self) -> list[ResourcePermission]:
        """Role entries with custom permission entries swapped in per resource."""
        if not self.authenticated:
            return []
        entries = permissions.get_role_permissions(self.user_role)
        if not self.overrides:
            return entries
        return [
            ResourcePermission(
                resource=entry.resource,
                actions=tuple(action for action in Action if self.can(entry.resource, action)),
            )
            for entry in entries
        ]


def require_permission(
    profile: UserProfile | None,
    resource: Resource | str,
    action: Action | str,
    *,
    method: str | None = None,
    path: str | None = None,
) -> UserCapabilities:
    """Raise PermissionError (and log the denial) unless the profile may act.

    Returns the evaluated capabilities so callers can reuse them.
    """
    capabilities = UserCapabilities.for_profile(profile)
    if capabilities.can(resource, action):
        return capabilities

    resource_name = getattr(resource, "value", resource)
    action_name = getattr(action, "value", action)
    logger.warning(
        "permission_denied user_id=%s role=%s resource=%s action=%s method=%s path=%s",
        profile.id if profile else None,
        capabilities.user_role,
        resource_name,
        action_name,
        method or "n/a",
        path or "n/a",
    )
    raise PermissionError.for_action(resource_name, action_name)
