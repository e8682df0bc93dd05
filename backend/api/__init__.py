"""
WearOn B2B API package.

Provides the FastAPI application for merchant credits, overage billing and
generation fulfillment.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
