"""Performance, venue and production repositories (read-only here)"""
from supabase import Client  # type: ignore

from boxoffice.models.catalog import Performance, Production, Venue

from .base import BaseRepository


class PerformanceRepository(BaseRepository[Performance, Performance, Performance]):
    def __init__(self, client: Client):
        super().__init__(client, "performances", Performance)


class VenueRepository(BaseRepository[Venue, Venue, Venue]):
    def __init__(self, client: Client):
        super().__init__(client, "venues", Venue)


class ProductionRepository(BaseRepository[Production, Production, Production]):
    def __init__(self, client: Client):
        super().__init__(client, "productions", Production)
