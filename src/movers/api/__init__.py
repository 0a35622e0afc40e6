"""Read-only JSON API over the ranking store."""

from movers.api.app import create_api_app

__all__ = ["create_api_app"]
