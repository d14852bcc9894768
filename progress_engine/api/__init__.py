"""
API package for the Progress Engine
Contains FastAPI routes, schemas, and dependencies
"""

from .main import create_app

__all__ = ["create_app"]
