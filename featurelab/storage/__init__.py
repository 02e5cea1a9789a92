"""Persistent option storage."""

from .options import MemoryOptionStore, OptionStore, YamlOptionStore, create_option_store

__all__ = ["MemoryOptionStore", "OptionStore", "YamlOptionStore", "create_option_store"]
