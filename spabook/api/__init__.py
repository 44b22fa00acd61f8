"""HTTP API for the booking service."""

from spabook.api.app import create_app

__all__ = ["create_app"]
