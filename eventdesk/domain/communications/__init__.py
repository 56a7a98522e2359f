"""Communications domain - Provider settings, templates, sends and delivery logs"""

from .router import router

__all__ = ["router"]
