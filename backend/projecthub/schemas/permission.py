from pydantic import BaseModel, ConfigDict, Field

from ..auth.rbac_contract import Action, Resource, ResourcePermission, Role, RolePermissionSet


class PermissionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource: Resource
    actions: list[Action] = Field(default_factory=list)

    @classmethod
    def from_resource_permission(cls, entry: ResourcePermission) -> "PermissionEntry":
        return cls(resource=entry.resource, actions=list(entry.actions))


class RoleDocument(BaseModel):
    description: str = Field(..., min_length=1, max_length=255)
    permissions: list[PermissionEntry]


class PermissionTableDocument(BaseModel):
    roles: dict[Role, RoleDocument]


class RolePermissionsResponse(BaseModel):
    role: str
    description: str | None = None
    permissions: list[PermissionEntry]

    @classmethod
    def from_role_set(cls, role_set: RolePermissionSet) -> "RolePermissionsResponse":
        return cls(
            role=role_set.role.value,
            description=role_set.description,
            permissions=[
                PermissionEntry.from_resource_permission(entry) for entry in role_set.permissions
            ],
        )


class PermissionCheckRequest(BaseModel):
    resource: str = Field(..., min_length=1, max_length=100)
    action: str = Field(..., min_length=1, max_length=100)


class PermissionCheckResponse(BaseModel):
    resource: str
    action: str
    allowed: bool


class CapabilitiesResponse(BaseModel):
    user_role: str | None
    is_admin: bool
    can_manage_users: bool
    can_verify_tasks: bool
    can_approve_expenditures: bool
    can_create_projects: bool
    can_manage_settings: bool
    permissions: list[PermissionEntry]
