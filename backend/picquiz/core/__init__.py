"""
Core module for application configuration and utilities.

Note: security and auth modules are not imported at package level to avoid
circular imports with picquiz.stores (which imports datetime_utils from core).
Import them directly: from picquiz.core.auth import ...
"""
from .config import settings

__all__ = ["settings"]
