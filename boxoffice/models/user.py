"""User directory model"""
from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    stripe_customer_id: Optional[str] = None

    class Config:
        from_attributes = True
