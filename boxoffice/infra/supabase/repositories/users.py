"""User directory repository"""
from typing import Optional

from supabase import Client  # type: ignore

from boxoffice.models.user import User

from .base import BaseRepository


class UserRepository(BaseRepository[User, User, User]):
    """Read access to the user directory"""

    def __init__(self, client: Client):
        super().__init__(client, "users", User)

    async def find_by_stripe_customer_id(self, stripe_customer_id: str) -> Optional[User]:
        return await self.find_one_by_field("stripe_customer_id", stripe_customer_id)
