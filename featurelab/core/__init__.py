"""Core plumbing shared by the registry and the admin surface."""

from .hooks import FEATURES_REGISTERED, HookBus, after_create_settings

__all__ = ["FEATURES_REGISTERED", "HookBus", "after_create_settings"]
