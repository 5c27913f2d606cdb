"""Stripe infrastructure module"""
from .client import StripeGateway

__all__ = ['StripeGateway']
