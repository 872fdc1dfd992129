from pydantic import BaseModel, ConfigDict, Field


class StoredPermissionEntry(BaseModel):
    """Custom permission entry as written by user administration.

    Names stay raw strings; the evaluator ignores resources and actions it
    does not know.
    """

    model_config = ConfigDict(frozen=True)

    resource: str
    actions: list[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    """Profile record as stored by user administration (read-only here).

    ``role`` stays a raw string: profiles written by older clients can hold a
    role outside the closed set, which the evaluator treats as "no permissions".
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    email: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")
    role: str | None = None
    is_active: bool = Field(default=True, alias="isActive")
    custom_permissions: list[StoredPermissionEntry] | None = Field(
        default=None, alias="customPermissions"
    )

    def override_map(self) -> dict[str, frozenset[str]] | None:
        """Custom permissions keyed by resource; the first entry for a resource wins."""
        if not self.custom_permissions:
            return None
        overrides: dict[str, frozenset[str]] = {}
        for entry in self.custom_permissions:
            if entry.resource not in overrides:
                overrides[entry.resource] = frozenset(entry.actions)
        return overrides
