"""Settings page composition: tabs of sections of option-bound fields.

Components contribute tabs by listening on the page's after-create hook and
calling add_tab(). The page renders the whole form as HTML and writes
submitted values back to the option store.
"""

from dataclasses import dataclass, field
from html import escape
from typing import Any, Callable, Iterator, Mapping

from ..core.hooks import HookBus, after_create_settings
from ..storage.options import OptionStore
from ..utils.logging import get_logger

logger = get_logger(__name__)

USAGE_DATA_URL = "https://elementor.com/help/share-usage-data/?utm_source=usage-data&utm_medium=wp-dash&utm_campaign=learn"


@dataclass
class SettingsField:
    """A single form row bound to one option."""

    id: str
    label: str  # HTML
    render: Callable[[Any], str]
    field_args: Any = None
    # Called with the submitted value instead of writing the option directly
    save: Callable[[str], None] | None = None


@dataclass
class SettingsSection:
    id: str
    fields: list[SettingsField] = field(default_factory=list)
    callback: Callable[[], str] | None = None
    label: str = ""


@dataclass
class SettingsTab:
    id: str
    label: str
    sections: list[SettingsSection] = field(default_factory=list)


class SettingsPage:
    """An admin settings page made of tabs."""

    def __init__(
        self,
        page_id: str,
        options: OptionStore,
        hooks: HookBus,
        key_prefix: str = "elementor_",
        title: str = "Tools",
    ) -> None:
        self.page_id = page_id
        self.options = options
        self.hooks = hooks
        self.key_prefix = key_prefix
        self.title = title
        self._tabs: dict[str, SettingsTab] = {}

    def create(self) -> "SettingsPage":
        """Let listeners contribute their tabs."""
        self.hooks.emit(after_create_settings(self.page_id), self)
        logger.debug("Settings page created", page=self.page_id, tabs=list(self._tabs))
        return self

    def add_tab(self, tab_id: str, label: str, sections: list[SettingsSection]) -> SettingsTab:
        """Add a tab, or append sections to an existing tab with the same id."""
        tab = self._tabs.get(tab_id)
        if tab is None:
            tab = SettingsTab(id=tab_id, label=label)
            self._tabs[tab_id] = tab
        tab.sections.extend(sections)
        return tab

    def get_tabs(self) -> dict[str, SettingsTab]:
        return dict(self._tabs)

    def get_option_key(self, field_id: str) -> str:
        return f"{self.key_prefix}{field_id}"

    def get_usage_section(self) -> SettingsSection:
        """Section asking the site owner to opt in to sharing usage data."""
        key = self.get_option_key("allow_tracking")

        def render(_: Any) -> str:
            current = str(self.options.get_option(key, "no"))
            checked = " checked" if current == "yes" else ""
            return (
                f'<input type="hidden" name="{key}" value="no">'
                f'<label><input type="checkbox" id="{key}" name="{key}" value="yes"{checked}> '
                "Become a super contributor by opting in to share non-sensitive plugin data "
                f'and to receive periodic email updates. <a href="{escape(USAGE_DATA_URL)}" '
                'target="_blank">Learn more.</a></label>'
            )

        return SettingsSection(
            id="usage",
            label="Usage Data Sharing",
            fields=[
                SettingsField(
                    id="allow_tracking",
                    label=f'<label for="{key}">Usage Data Sharing</label>',
                    render=render,
                ),
            ],
        )

    def iter_fields(self) -> Iterator[SettingsField]:
        for tab in self._tabs.values():
            for section in tab.sections:
                yield from section.fields

    def save(self, form: Mapping[str, Any]) -> list[str]:
        """
        Write submitted values for every field on the page.

        Args:
            form: Submitted form data keyed by option key

        Returns:
            The option keys that were saved
        """
        saved: list[str] = []
        for settings_field in self.iter_fields():
            key = self.get_option_key(settings_field.id)
            if key not in form:
                continue
            value = form[key]
            if settings_field.save is not None:
                settings_field.save(value)
            else:
                self.options.update_option(key, value)
            saved.append(key)

        logger.info("Settings saved", page=self.page_id, keys=saved)
        return saved

    def render(self, tab_id: str | None = None, action: str = "") -> str:
        """Render the page as an HTML document. tab_id defaults to the first tab."""
        if not self._tabs:
            return self._document("<p>No settings registered.</p>")

        if tab_id is None:
            tab_id = next(iter(self._tabs))
        if tab_id not in self._tabs:
            raise KeyError(tab_id)

        nav = "".join(
            f'<a href="?tab={escape(t.id)}" class="nav-tab{" nav-tab-active" if t.id == tab_id else ""}">'
            f"{escape(t.label)}</a>"
            for t in self._tabs.values()
        )

        body = []
        for section in self._tabs[tab_id].sections:
            body.append(f'<div class="e-settings-section" id="e-settings-{escape(section.id)}">')
            if section.label:
                body.append(f"<h2>{escape(section.label)}</h2>")
            if section.callback is not None:
                body.append(section.callback())
            body.append('<table class="form-table"><tbody>')
            for settings_field in section.fields:
                body.append(
                    "<tr>"
                    f'<th scope="row">{settings_field.label}</th>'
                    f"<td>{settings_field.render(settings_field.field_args)}</td>"
                    "</tr>"
                )
            body.append("</tbody></table></div>")

        content = (
            f'<nav class="nav-tab-wrapper">{nav}</nav>'
            f'<form method="post" action="{escape(action)}">'
            f'<input type="hidden" name="tab" value="{escape(tab_id)}">'
            f"{''.join(body)}"
            '<p class="submit"><button type="submit" class="button button-primary">Save Changes</button></p>'
            "</form>"
        )
        return self._document(content)

    def _document(self, content: str) -> str:
        title = escape(self.title)
        return (
            "<!DOCTYPE html><html><head>"
            f'<meta charset="utf-8"><title>{title}</title>'
            "</head><body>"
            f'<div class="wrap"><h1>{title}</h1>{content}</div>'
            "</body></html>"
        )
