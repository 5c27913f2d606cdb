"""Repository factory and exports"""
from supabase import Client  # type: ignore
from .orders import OrderRepository
from .tickets import TicketRepository
from .users import UserRepository
from .subscriptions import SubscriptionRepository
from .catalog import PerformanceRepository, VenueRepository, ProductionRepository
from .stripe_events import StripeEventRepository


class RepositoryFactory:
    """Factory for creating repository instances"""

    def __init__(self, client: Client):
        self._client = client
        self._cache: dict = {}

    def _get(self, repo_class):
        if repo_class not in self._cache:
            self._cache[repo_class] = repo_class(self._client)
        return self._cache[repo_class]

    @property
    def orders(self) -> OrderRepository:
        return self._get(OrderRepository)

    @property
    def tickets(self) -> TicketRepository:
        return self._get(TicketRepository)

    @property
    def users(self) -> UserRepository:
        return self._get(UserRepository)

    @property
    def subscriptions(self) -> SubscriptionRepository:
        return self._get(SubscriptionRepository)

    @property
    def performances(self) -> PerformanceRepository:
        return self._get(PerformanceRepository)

    @property
    def venues(self) -> VenueRepository:
        return self._get(VenueRepository)

    @property
    def productions(self) -> ProductionRepository:
        return self._get(ProductionRepository)

    @property
    def stripe_events(self) -> StripeEventRepository:
        return self._get(StripeEventRepository)


__all__ = [
    'RepositoryFactory',
    'OrderRepository',
    'TicketRepository',
    'UserRepository',
    'SubscriptionRepository',
    'PerformanceRepository',
    'VenueRepository',
    'ProductionRepository',
    'StripeEventRepository',
]
