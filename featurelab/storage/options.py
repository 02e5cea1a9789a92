"""Site key-value option store.

Options are small persisted values (experiment overrides, admin toggles)
addressed by a flat string key. Writes are last-write-wins.
"""

import shutil
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from ..utils.config import OptionsConfig
from ..utils.logging import get_logger

logger = get_logger(__name__)


class OptionStore(ABC):
    """Abstract key-value option store."""

    @abstractmethod
    def get_option(self, key: str, default: Any = None) -> Any:
        """Return the stored value for key, or default when unset."""
        ...

    @abstractmethod
    def update_option(self, key: str, value: Any) -> None:
        """Create or overwrite an option."""
        ...

    @abstractmethod
    def delete_option(self, key: str) -> bool:
        """Remove an option. Returns False if it was not set."""
        ...

    @abstractmethod
    def all_options(self) -> dict[str, Any]:
        ...


class MemoryOptionStore(OptionStore):
    """Process-local option store, used for tests and throwaway runs."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._options: dict[str, Any] = dict(initial or {})

    def get_option(self, key: str, default: Any = None) -> Any:
        return self._options.get(key, default)

    def update_option(self, key: str, value: Any) -> None:
        self._options[key] = value

    def delete_option(self, key: str) -> bool:
        if key not in self._options:
            return False
        del self._options[key]
        return True

    def all_options(self) -> dict[str, Any]:
        return dict(self._options)


class YamlOptionStore(OptionStore):
    """
    Option store backed by a YAML mapping file.

    The file is read once on first access and cached; call reload() to pick
    up changes made by another process.
    """

    def __init__(self, path: str | Path, backup: bool = False) -> None:
        self.path = Path(path).expanduser()
        self.backup = backup
        self._cache: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._cache is None:
            if self.path.exists():
                with open(self.path) as f:
                    data = yaml.safe_load(f) or {}
                if not isinstance(data, dict):
                    raise ValueError(f"Option file {self.path} must contain a mapping")
                self._cache = data
            else:
                self._cache = {}
        return self._cache

    def _save(self) -> None:
        """Write the options back to disk, keeping a timestamped backup if enabled."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        if self.backup and self.path.exists():
            ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            backup = self.path.with_suffix(f".{ts}.bak")
            shutil.copy2(self.path, backup)

        with open(self.path, "w") as f:
            yaml.dump(self._load(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    def reload(self) -> None:
        self._cache = None

    def get_option(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def update_option(self, key: str, value: Any) -> None:
        self._load()[key] = value
        self._save()
        logger.debug("Option updated", key=key, path=str(self.path))

    def delete_option(self, key: str) -> bool:
        options = self._load()
        if key not in options:
            return False
        del options[key]
        self._save()
        return True

    def all_options(self) -> dict[str, Any]:
        return dict(self._load())


def create_option_store(config: OptionsConfig) -> OptionStore:
    """Build the option store selected by options.backend."""
    if config.backend == "memory":
        return MemoryOptionStore()
    if config.backend == "yaml":
        return YamlOptionStore(config.path, backup=config.backup_on_write)
    if config.backend == "sql":
        from .sql import SqlOptionStore

        return SqlOptionStore(config.url)
    raise ValueError(f"Unknown option store backend: {config.backend}")
