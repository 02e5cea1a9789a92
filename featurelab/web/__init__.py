"""Web admin surface for FeatureLab."""

from .api import create_app

__all__ = ["create_app"]
