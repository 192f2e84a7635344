"""HTTP surface: proof endpoints and the relayer endpoint."""

from .app import create_app

__all__ = ["create_app"]
