"""Subscriptions repository"""
from supabase import Client  # type: ignore

from boxoffice.models.subscription import Subscription, SubscriptionUpdate

from .base import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription, Subscription, SubscriptionUpdate]):
    """Repository for per-user subscription records, keyed by user_id"""

    def __init__(self, client: Client):
        super().__init__(client, "subscriptions", Subscription, id_column="user_id")
