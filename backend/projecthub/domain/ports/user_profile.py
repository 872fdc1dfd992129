from __future__ import annotations

from typing import Protocol

from ...schemas.user_profile import UserProfile


class UserProfileProvider(Protocol):
    """Read-only access to user profiles owned by user administration."""

    async def get_profile(self, user_id: str) -> UserProfile | None:
        ...
