"""Shared schema exports."""

from .account import AccountView
from .claims import TokenClaims

__all__ = [
    "AccountView",
    "TokenClaims",
]
