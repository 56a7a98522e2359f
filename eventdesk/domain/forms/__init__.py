"""Forms domain - Custom form builder and public submissions"""

from .router import router

__all__ = ["router"]
