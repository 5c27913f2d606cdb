"""Read-only catalog records used to enrich ticket emails"""
from typing import Optional

from pydantic import BaseModel


class Production(BaseModel):
    id: str
    name: Optional[str] = None
    title: Optional[str] = None

    class Config:
        from_attributes = True


class Performance(BaseModel):
    id: str
    production_id: Optional[str] = None
    production_name: Optional[str] = None
    title: Optional[str] = None
    venue_id: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None

    class Config:
        from_attributes = True


class Venue(BaseModel):
    id: Optional[str] = None  # snapshot venues built from an order have no id
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    class Config:
        from_attributes = True
