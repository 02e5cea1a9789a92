"""Wire the option store, hooks, registry and admin page together."""

from dataclasses import dataclass
from typing import Any

from .admin.experiments_settings import register_experiments_settings
from .admin.settings_page import SettingsPage
from .core.hooks import FEATURES_REGISTERED, HookBus
from .experiments.manager import ExperimentsManager
from .storage.options import OptionStore, create_option_store
from .utils.config import Settings, get_settings
from .utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Runtime:
    """Everything a request handler or CLI command needs."""

    settings: Settings
    options: OptionStore
    hooks: HookBus
    manager: ExperimentsManager

    def build_settings_page(self) -> SettingsPage:
        """Create a fresh admin settings page reflecting the current registry."""
        page = SettingsPage(
            self.settings.web.settings_page_id,
            self.options,
            self.hooks,
            key_prefix=self.settings.options.key_prefix,
        )
        return page.create()


def _register_config_features(settings: Settings):
    def register(manager: ExperimentsManager) -> None:
        for options in settings.experiments.extra_features:
            if manager.add_feature(options) is None:
                logger.warning("Configured experiment already registered", feature=options.get("name"))

    return register


def build_runtime(
    settings: Settings | None = None,
    options: OptionStore | None = None,
    hooks: HookBus | None = None,
    builtin: list[dict[str, Any]] | None = None,
) -> Runtime:
    """
    Build the registry once at startup.

    Listeners already on `hooks` for the features-registered hook run after
    the built-in features, followed by features declared in config.

    Raises:
        ValueError: if the experiments config holds an entry the registry
            would reject.
    """
    settings = settings or get_settings()
    settings.validate()
    options = options if options is not None else create_option_store(settings.options)
    hooks = hooks or HookBus()

    manager = ExperimentsManager(options, hooks, key_prefix=settings.options.key_prefix)

    unsubscribe = hooks.on(FEATURES_REGISTERED, _register_config_features(settings), priority=100)
    try:
        if settings.experiments.register_builtin:
            manager.init_features(builtin)
        else:
            manager.init_features([])
    finally:
        unsubscribe()

    for feature_name, default_state in settings.experiments.default_overrides.items():
        if manager.get_features(feature_name) is None:
            logger.warning("Default override for unknown experiment", feature=feature_name)
            continue
        manager.set_feature_default_state(feature_name, default_state)

    if settings.web.admin_enabled:
        register_experiments_settings(manager, hooks, settings.web.settings_page_id)

    return Runtime(settings=settings, options=options, hooks=hooks, manager=manager)
