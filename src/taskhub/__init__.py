"""Task tracking API with per-user ownership and an admin role."""

from .api import create_app

__all__ = ["create_app"]
