"""Experiment registry: named in-development features and their toggle state."""

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Iterable, Mapping

from ..core.hooks import FEATURES_REGISTERED, HookBus
from ..storage.options import OptionStore
from ..utils.logging import get_logger

logger = get_logger(__name__)

ALLOWED_OPTIONS = ("name", "title", "description", "status", "default")


class _CodedEnum(IntEnum):
    """IntEnum that also parses its lowercase names ("active", "beta", ...)."""

    @classmethod
    def coerce(cls, value: Any) -> "_CodedEnum":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip()
            if text.lstrip("-").isdigit():
                value = int(text)
            else:
                try:
                    return cls[text.upper()]
                except KeyError:
                    raise ValueError(f"Unknown {cls.__name__}: {value!r}") from None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Unknown {cls.__name__}: {value!r}")
        return cls(value)

    @property
    def label(self) -> str:
        return self.name.capitalize()


class FeatureState(_CodedEnum):
    """Toggle state. The integer codes are what the option store holds."""

    DEFAULT = 0
    ACTIVE = 1
    INACTIVE = 2


class FeatureStatus(_CodedEnum):
    """Maturity label shown to operators."""

    ALPHA = 1
    BETA = 2


@dataclass
class Feature:
    """A registered experiment."""

    name: str
    title: str
    description: str
    status: FeatureStatus
    default: FeatureState
    state: FeatureState = FeatureState.DEFAULT

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.label
        data["default"] = self.default.label
        data["state"] = self.state.label
        return data


class ExperimentsManager:
    """
    Registry of experiments backed by an option store.

    Each feature's `state` is seeded from the option store when the feature
    is registered. Activation resolves as: explicit state override, then the
    author default, then inactive.
    """

    def __init__(
        self,
        options: OptionStore,
        hooks: HookBus | None = None,
        key_prefix: str = "elementor_",
    ) -> None:
        self.options = options
        self.hooks = hooks or HookBus()
        self.key_prefix = key_prefix
        self._features: dict[str, Feature] = {}

    def add_feature(self, options: Mapping[str, Any]) -> Feature | None:
        """
        Register a feature.

        Args:
            options: Mapping with name (required), title, description, status
                and default. Other keys are ignored.

        Returns:
            The stored feature, or None if the name is already registered.
        """
        name = options.get("name")
        if not name or not isinstance(name, str):
            raise ValueError("Feature name is required")

        if name in self._features:
            logger.debug("Feature already registered", feature=name)
            return None

        allowed = {k: v for k, v in options.items() if k in ALLOWED_OPTIONS}

        feature = Feature(
            name=name,
            title=allowed.get("title") or name,
            description=allowed.get("description") or "",
            status=FeatureStatus.coerce(allowed.get("status", FeatureStatus.ALPHA)),
            default=FeatureState.coerce(allowed.get("default", FeatureState.DEFAULT)),
        )
        feature.state = self._get_saved_feature_state(name)

        self._features[name] = feature
        logger.debug(
            "Feature registered",
            feature=name,
            status=feature.status.label,
            default=feature.default.label,
            state=feature.state.label,
        )
        return feature

    def get_features(self, feature_name: str | None = None) -> dict[str, Feature] | Feature | None:
        """All features in registration order, or a single feature (None if absent)."""
        if feature_name is None:
            return dict(self._features)
        return self._features.get(feature_name)

    def is_feature_active(self, feature_name: str) -> bool:
        feature = self._features.get(feature_name)

        if not feature or feature.state == FeatureState.INACTIVE:
            return False

        if feature.state == FeatureState.DEFAULT:
            return feature.default == FeatureState.ACTIVE

        return True

    def set_feature_default_state(self, feature_name: str, default_state: Any) -> None:
        """Change a feature's author default. The state override is left alone."""
        feature = self._features.get(feature_name)
        if not feature:
            return

        feature.default = FeatureState.coerce(default_state)

    def set_feature_state(self, feature_name: str, state: Any) -> Feature | None:
        """Change the in-memory state of a feature without persisting it."""
        feature = self._features.get(feature_name)
        if not feature:
            return None

        feature.state = FeatureState.coerce(state)
        return feature

    def save_feature_state(self, feature_name: str, state: Any) -> Feature | None:
        """Persist a state override and apply it to the registered feature."""
        feature = self._features.get(feature_name)
        if not feature:
            return None

        new_state = FeatureState.coerce(state)
        self.options.update_option(self.get_feature_option_key(feature_name), int(new_state))
        feature.state = new_state
        logger.info("Feature state saved", feature=feature_name, state=new_state.label)
        return feature

    def get_feature_option_key(self, feature_name: str) -> str:
        return f"{self.key_prefix}experiment-{feature_name}"

    def init_features(self, builtin: Iterable[Mapping[str, Any]] | None = None) -> None:
        """Register the built-in features, then let other callers register theirs."""
        if builtin is None:
            from .builtin import BUILTIN_FEATURES

            builtin = BUILTIN_FEATURES

        for options in builtin:
            self.add_feature(options)

        self.hooks.emit(FEATURES_REGISTERED, self)
        logger.info("Experiments registered", count=len(self._features))

    def _get_saved_feature_state(self, feature_name: str) -> FeatureState:
        key = self.get_feature_option_key(feature_name)
        raw = self.options.get_option(key)
        if raw in (None, ""):
            return FeatureState.DEFAULT

        try:
            code = int(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed experiment option", key=key, value=raw)
            return FeatureState.DEFAULT

        try:
            return FeatureState(code)
        except ValueError:
            logger.warning("Ignoring unknown experiment state", key=key, value=code)
            return FeatureState.DEFAULT
