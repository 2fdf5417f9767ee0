"""Profile lookups against the ``profiles`` table."""
import logging

from pydantic import ValidationError
from supabase import Client

from app.core.errors import ProfileFetchError
from app.schemas.auth import Profile

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, full_name, role, client_id, agent_name"


class ProfileStore:
    def __init__(self, client: Client):
        self.client = client

    def get_profile(self, user_id: str) -> Profile:
        """Fetch the tenant profile for ``user_id``.

        Raises ProfileFetchError when the row is missing, the request fails,
        or the row does not match the Profile shape.
        """
        try:
            resp = (
                self.client.table("profiles")
                .select(PROFILE_COLUMNS)
                .eq("id", user_id)
                .maybe_single()
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to fetch profile for user {user_id}: {str(e)}")
            raise ProfileFetchError(f"Failed to fetch profile: {str(e)}") from e

        data = resp.data if resp is not None else None
        if not data:
            logger.warning(f"No profile row for user {user_id}")
            raise ProfileFetchError("Profile not found")

        try:
            return Profile(**data)
        except ValidationError as e:
            logger.error(f"Profile row for user {user_id} is malformed: {e}")
            raise ProfileFetchError("Profile data is invalid") from e
