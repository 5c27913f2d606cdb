"""Ticket domain model"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TicketStatus(str, Enum):
    VALID = "valid"
    VOID = "void"


class Ticket(BaseModel):
    """Ticket owned by exactly one order"""
    id: str
    order_id: str
    seat_id: Optional[str] = None
    section: Optional[str] = None
    row: Optional[str] = None
    seat_number: Optional[str] = None
    price: int = 0  # minor currency units
    status: TicketStatus = TicketStatus.VALID
    qr_code: Optional[str] = None  # access link embedding order id and view token
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
