"""Admin settings page and the experiments tab."""

from .experiments_settings import ExperimentsSettings, register_experiments_settings
from .settings_page import SettingsField, SettingsPage, SettingsSection, SettingsTab

__all__ = [
    "ExperimentsSettings",
    "register_experiments_settings",
    "SettingsField",
    "SettingsPage",
    "SettingsSection",
    "SettingsTab",
]
