"""Outbound email delivery"""
from .sendgrid import EmailSender

__all__ = ['EmailSender']
