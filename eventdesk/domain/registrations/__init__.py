"""Registrations domain - Attendee sign-up, payments and imports"""

from .router import router

__all__ = ["router"]
