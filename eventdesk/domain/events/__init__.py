"""Events domain - Event lifecycle and settings"""

from .router import router

__all__ = ["router"]
