"""HTTP surface for the engine."""

from taskweave.api.app import create_app

__all__ = ["create_app"]
