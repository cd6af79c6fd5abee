"""Web server for planboard."""

from .api import create_app

__all__ = ["create_app"]
