"""Program domain - Scientific program sessions and faculty invitations"""

from .router import router

__all__ = ["router"]
