"""REST API for cub-scout.

Exposes:
    create_app -- FastAPI application factory.
"""

from cubscout.api.app import create_app

__all__ = ["create_app"]
