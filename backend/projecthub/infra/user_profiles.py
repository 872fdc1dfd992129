from __future__ import annotations

import threading
from collections.abc import Iterable

from ..schemas.user_profile import UserProfile


class InMemoryUserProfileProvider:
    """Profile provider backed by a dict keyed by user id.

    Used for local runs and tests; the document-store adapter lives with the
    user administration service.
    """

    def __init__(self, profiles: Iterable[UserProfile] = ()):
        self._lock = threading.Lock()
        self._profiles: dict[str, UserProfile] = {profile.id: profile for profile in profiles}

    async def get_profile(self, user_id: str) -> UserProfile | None:
        return self._profiles.get(user_id)

    def put(self, profile: UserProfile) -> None:
        with self._lock:
            profiles = dict(self._profiles)
            profiles[profile.id] = profile
            self._profiles = profiles


default_profile_provider = InMemoryUserProfileProvider()
