"""Experiments tab for the admin settings page."""

from html import escape
from typing import Callable

from ..core.hooks import HookBus, after_create_settings
from ..experiments.manager import ExperimentsManager, Feature, FeatureState
from ..utils.logging import get_logger
from .settings_page import USAGE_DATA_URL, SettingsField, SettingsPage, SettingsSection

logger = get_logger(__name__)

TAB_ID = "experiments"


def register_experiments_settings(
    manager: ExperimentsManager,
    hooks: HookBus,
    page_id: str,
    priority: int = 11,
) -> Callable[[], None]:
    """Add the Experiments tab whenever the settings page is created. Returns an unsubscribe function."""

    def on_settings_created(page: SettingsPage) -> None:
        ExperimentsSettings(manager).register(page)

    return hooks.on(after_create_settings(page_id), on_settings_created, priority=priority)


class ExperimentsSettings:
    """Renders the experiments list and saves the submitted states."""

    def __init__(self, manager: ExperimentsManager) -> None:
        self.manager = manager

    def register(self, page: SettingsPage) -> None:
        fields = [
            SettingsField(
                id=f"experiment-{feature.name}",
                label=self.render_label(feature),
                render=self.render_field,
                field_args=feature,
                save=self._saver(feature.name),
            )
            for feature in self.manager.get_features().values()
        ]

        page.add_tab(
            TAB_ID,
            "Experiments",
            [
                SettingsSection(id="experiments", fields=fields, callback=self.render_intro),
                page.get_usage_section(),
            ],
        )

    def render_intro(self) -> str:
        return (
            "<h2>Elementor Experiments</h2>"
            '<p class="e-experiments__description">'
            "The list items below are experiments Elementor conducts before they are released. "
            "Please note that Experiments might change during their development. "
            f'<a href="{escape(USAGE_DATA_URL)}">Learn More</a></p>'
        )

    def render_field(self, feature: Feature) -> str:
        name = escape(feature.name)
        option_key = escape(self.manager.get_feature_option_key(feature.name))

        options = "".join(
            f'<option value="{int(state)}"{" selected" if state == feature.state else ""}>{state.label}</option>'
            for state in FeatureState
        )

        # Description is author markup and may contain links
        return (
            '<div class="e-experiment__content">'
            f'<select id="e-experiment-{name}" class="e-experiment__select" name="{option_key}">'
            f"{options}</select>"
            f'<div class="e-experiment__description">{feature.description}</div>'
            f'<div class="e-experiment__status">Status: {feature.status.label}</div>'
            "</div>"
        )

    def render_label(self, feature: Feature) -> str:
        indicator_classes = "e-experiment__title__indicator"
        if self.manager.is_feature_active(feature.name):
            indicator_classes += " e-experiment__title__indicator--active"

        name = escape(feature.name)
        return (
            '<div class="e-experiment__title">'
            f'<div class="{indicator_classes}"></div>'
            f'<label class="e-experiment__title__label" for="e-experiment-{name}">{escape(feature.title)}</label>'
            "</div>"
        )

    def _saver(self, feature_name: str) -> Callable[[str], None]:
        def save(value: str) -> None:
            try:
                state = FeatureState.coerce(value)
            except ValueError:
                logger.warning("Ignoring invalid experiment state", feature=feature_name, value=value)
                return
            self.manager.save_feature_state(feature_name, state)

        return save
