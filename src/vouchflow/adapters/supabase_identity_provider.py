"""Resolve campaign owners from Supabase Auth access tokens."""

import logging
from dataclasses import dataclass
from typing import Protocol

from supabase import Client

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    """Interface for resolving a bearer token to a user id."""

    def resolve_user_id(self, access_token: str) -> str | None:
        """Return the user id for a valid token, otherwise None."""


@dataclass
class SupabaseIdentityProvider(IdentityProvider):
    """Identity provider backed by Supabase Auth."""

    client: Client

    def resolve_user_id(self, access_token: str) -> str | None:
        """Validate the access token with Supabase Auth."""
        try:
            response = self.client.auth.get_user(access_token)
        except Exception:
            logger.warning("Rejected access token", exc_info=True)
            return None
        if response is None or response.user is None:
            return None
        return str(response.user.id)
