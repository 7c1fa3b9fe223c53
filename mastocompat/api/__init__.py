"""Mastodon-compatible HTTP layer.

A FastAPI app that answers Mastodon REST requests by calling the platform
gateway and running the results through the mappers.
"""

from .server import create_app  # noqa: F401
