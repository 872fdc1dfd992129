from fastapi import APIRouter, Depends

from ..auth import permissions
from ..auth.permission_table import get_permission_table
from ..auth.rbac_contract import Action, Resource, Role
from ..dependencies import get_capabilities, require_resource_permission
from ..schemas.permission import (
    CapabilitiesResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionEntry,
    RolePermissionsResponse,
)
from ..services.capabilities import UserCapabilities

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("/roles", response_model=list[RolePermissionsResponse])
async def list_roles(
    _: UserCapabilities = Depends(require_resource_permission(Resource.USERS, Action.READ)),
) -> list[RolePermissionsResponse]:
    table = get_permission_table()
    return [RolePermissionsResponse.from_role_set(table[role]) for role in Role if role in table]


@router.get("/roles/{role}", response_model=RolePermissionsResponse)
async def get_role(
    role: str,
    _: UserCapabilities = Depends(require_resource_permission(Resource.USERS, Action.READ)),
) -> RolePermissionsResponse:
    """Capability summary for a role; unknown roles have no permissions."""
    entries = permissions.get_role_permissions(role)
    role_set = get_permission_table().get(Role(role)) if entries else None
    return RolePermissionsResponse(
        role=role,
        description=role_set.description if role_set else None,
        permissions=[PermissionEntry.from_resource_permission(entry) for entry in entries],
    )


@router.get("/me", response_model=CapabilitiesResponse)
async def my_capabilities(
    capabilities: UserCapabilities = Depends(get_capabilities),
) -> CapabilitiesResponse:
    return CapabilitiesResponse(
        user_role=capabilities.user_role,
        is_admin=capabilities.is_admin,
        can_manage_users=capabilities.can_manage_users,
        can_verify_tasks=capabilities.can_verify_tasks,
        can_approve_expenditures=capabilities.can_approve_expenditures,
        can_create_projects=capabilities.can_create_projects,
        can_manage_settings=capabilities.can_manage_settings,
        permissions=[
            PermissionEntry.from_resource_permission(entry)
            for entry in capabilities.effective_permissions()
        ],
    )


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    payload: PermissionCheckRequest,
    capabilities: UserCapabilities = Depends(get_capabilities),
) -> PermissionCheckResponse:
    return PermissionCheckResponse(
        resource=payload.resource,
        action=payload.action,
        allowed=capabilities.can(payload.resource, payload.action),
    )
