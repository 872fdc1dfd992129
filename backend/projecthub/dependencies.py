from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth.rbac_contract import Action, Resource
from .domain.ports.user_profile import UserProfileProvider
from .infra.user_profiles import default_profile_provider
from .schemas.user_profile import UserProfile
from .security.token_inspection import ExpiredTokenError, InvalidTokenError, validate_access_token
from .services.capabilities import UserCapabilities, require_permission

bearer_scheme = HTTPBearer(auto_error=False)


def get_profile_provider() -> UserProfileProvider:
    return default_profile_provider


async def get_current_profile(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    provider: UserProfileProvider = Depends(get_profile_provider),
) -> UserProfile:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )

    try:
        payload = validate_access_token(credentials.credentials)
    except ExpiredTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired"
        ) from None
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        ) from None

    profile = await provider.get_profile(payload["sub"])
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Profile not found"
        )
    if not profile.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="User is inactive"
        )

    return profile


async def get_capabilities(
    profile: UserProfile = Depends(get_current_profile),
) -> UserCapabilities:
    return UserCapabilities.for_profile(profile)


def require_resource_permission(resource: Resource, action: Action):
    """Dependency factory guarding a route with a (resource, action) check."""

    async def checker(
        request: Request,
        profile: UserProfile = Depends(get_current_profile),
    ) -> UserCapabilities:
        return require_permission(
            profile,
            resource,
            action,
            method=request.method,
            path=request.url.path,
        )

    return checker
