"""Abstracts domain - Call for papers, committee review and decisions"""

from .router import router

__all__ = ["router"]
