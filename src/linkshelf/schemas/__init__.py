# src/linkshelf/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import ErrorResponse, LoginResponse, LogoutResponse, MeResponse
from .nav import NavCategory, NavConfig, NavLink, NavSite, is_nav_config, sort_categories

__all__ = [
    "ErrorResponse", "LoginResponse", "LogoutResponse", "MeResponse",
    "NavCategory", "NavConfig", "NavLink", "NavSite",
    "is_nav_config", "sort_categories",
]
