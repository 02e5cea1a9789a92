"""Experiments that ship with the plugin."""

from typing import Any

from .manager import FeatureState, FeatureStatus

LEGACY_DOM_URL = "https://go.elementor.com/wp-dash-legacy-optimized-dom"

BUILTIN_FEATURES: list[dict[str, Any]] = [
    {
        "name": "dom_optimization",
        "title": "Optimized DOM Output",
        "description": (
            "Developers, Please Note! If you've used custom code in Elementor, you might have "
            "experienced a snippet of code not running. Legacy DOM Output allows you to keep "
            "prior Elementor markup output settings, and have that lovely code running again."
            f' <a href="{LEGACY_DOM_URL}" target="_blank">Learn More</a>'
        ),
        "status": FeatureStatus.ALPHA,
        "default": FeatureState.INACTIVE,
    },
]
