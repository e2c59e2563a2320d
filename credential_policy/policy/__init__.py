"""Credential policy components."""

from .expiration import ExpirationTracker
from .reuse import ReuseChecker
from .strength import StrengthValidator

__all__ = ["ExpirationTracker", "ReuseChecker", "StrengthValidator"]
