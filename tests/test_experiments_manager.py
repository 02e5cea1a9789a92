"""Tests for the experiments registry."""

import pytest

from featurelab.core.hooks import FEATURES_REGISTERED
from featurelab.experiments import BUILTIN_FEATURES
from featurelab.experiments.manager import ExperimentsManager, FeatureState, FeatureStatus
from featurelab.storage.options import MemoryOptionStore


def _feature(name="new_nav", **kwargs):
    options = {
        "name": name,
        "title": "New Navigation",
        "description": "Rebuilt navigation menu",
        "status": FeatureStatus.BETA,
        "default": FeatureState.ACTIVE,
    }
    options.update(kwargs)
    return options


def test_add_feature_returns_record(manager):
    feature = manager.add_feature(_feature())
    assert feature.name == "new_nav"
    assert feature.title == "New Navigation"
    assert feature.status is FeatureStatus.BETA
    assert feature.default is FeatureState.ACTIVE
    assert feature.state is FeatureState.DEFAULT


def test_duplicate_registration_is_rejected(manager):
    first = manager.add_feature(_feature(title="First"))
    second = manager.add_feature(_feature(title="Second", default=FeatureState.INACTIVE))
    assert second is None
    assert manager.get_features("new_nav") is first
    assert first.title == "First"
    assert first.default is FeatureState.ACTIVE


def test_unknown_options_are_dropped(manager):
    feature = manager.add_feature(_feature(state=FeatureState.ACTIVE, owner="team-a"))
    assert not hasattr(feature, "owner")
    # state can only come from the option store
    assert feature.state is FeatureState.DEFAULT
    assert set(feature.to_dict()) == {"name", "title", "description", "status", "default", "state"}


def test_missing_fields_fall_back(manager):
    feature = manager.add_feature({"name": "bare"})
    assert feature.title == "bare"
    assert feature.description == ""
    assert feature.status is FeatureStatus.ALPHA
    assert feature.default is FeatureState.DEFAULT
    assert manager.is_feature_active("bare") is False


def test_name_is_required(manager):
    with pytest.raises(ValueError):
        manager.add_feature({"title": "No name"})
    with pytest.raises(ValueError):
        manager.add_feature({"name": ""})


def test_invalid_default_is_rejected(manager):
    with pytest.raises(ValueError):
        manager.add_feature(_feature(default="sometimes"))
    assert manager.get_features("new_nav") is None


def test_unregistered_feature_is_inactive(manager):
    assert manager.is_feature_active("nope") is False


def test_default_active_without_override_is_active(manager):
    manager.add_feature(_feature(default=FeatureState.ACTIVE))
    assert manager.get_features("new_nav").state is FeatureState.DEFAULT
    assert manager.is_feature_active("new_nav") is True


def test_default_inactive_without_override_is_inactive(manager):
    manager.add_feature(_feature(default=FeatureState.INACTIVE))
    assert manager.is_feature_active("new_nav") is False


def test_stored_inactive_override_wins():
    options = MemoryOptionStore({"elementor_experiment-new_nav": 2})
    manager = ExperimentsManager(options)
    feature = manager.add_feature(_feature(default=FeatureState.ACTIVE))
    assert feature.state is FeatureState.INACTIVE
    assert manager.is_feature_active("new_nav") is False


def test_stored_active_override_wins():
    # Form submissions store strings
    options = MemoryOptionStore({"elementor_experiment-new_nav": "1"})
    manager = ExperimentsManager(options)
    manager.add_feature(_feature(default=FeatureState.INACTIVE))
    assert manager.get_features("new_nav").state is FeatureState.ACTIVE
    assert manager.is_feature_active("new_nav") is True


@pytest.mark.parametrize("raw", ["", "garbage", 7, None, "0"])
def test_unusable_saved_state_falls_back_to_default(raw):
    options = MemoryOptionStore({"elementor_experiment-new_nav": raw})
    manager = ExperimentsManager(options)
    feature = manager.add_feature(_feature())
    assert feature.state is FeatureState.DEFAULT


def test_custom_key_prefix():
    options = MemoryOptionStore({"site_experiment-new_nav": 2})
    manager = ExperimentsManager(options, key_prefix="site_")
    manager.add_feature(_feature())
    assert manager.get_feature_option_key("new_nav") == "site_experiment-new_nav"
    assert manager.is_feature_active("new_nav") is False


def test_set_feature_default_state_only_touches_default(manager, options):
    manager.add_feature(_feature(default=FeatureState.INACTIVE))
    manager.set_feature_default_state("new_nav", FeatureState.ACTIVE)
    feature = manager.get_features("new_nav")
    assert feature.default is FeatureState.ACTIVE
    assert feature.state is FeatureState.DEFAULT
    assert options.all_options() == {}
    assert manager.is_feature_active("new_nav") is True


def test_set_feature_default_state_unknown_is_noop(manager):
    manager.add_feature(_feature())
    manager.set_feature_default_state("missing", FeatureState.ACTIVE)
    assert list(manager.get_features()) == ["new_nav"]


def test_get_features_keeps_registration_order(manager):
    for name in ("zeta", "alpha", "mid"):
        manager.add_feature({"name": name})
    assert list(manager.get_features()) == ["zeta", "alpha", "mid"]


def test_get_features_returns_stored_records(manager):
    feature = manager.add_feature(_feature())
    assert manager.get_features("new_nav") is feature
    assert manager.get_features()["new_nav"] is feature
    assert manager.get_features("missing") is None

    # The mapping is a copy; mutating it does not unregister anything
    manager.get_features().clear()
    assert manager.get_features("new_nav") is feature


def test_explicit_active_state_ignores_default(manager):
    manager.add_feature(_feature(default=FeatureState.INACTIVE))
    manager.set_feature_state("new_nav", "active")
    assert manager.is_feature_active("new_nav") is True
    manager.set_feature_state("new_nav", FeatureState.INACTIVE)
    assert manager.is_feature_active("new_nav") is False
    assert manager.set_feature_state("missing", FeatureState.ACTIVE) is None


def test_save_feature_state_persists_code(manager, options):
    manager.add_feature(_feature(default=FeatureState.ACTIVE))
    feature = manager.save_feature_state("new_nav", "inactive")
    assert feature.state is FeatureState.INACTIVE
    assert options.get_option("elementor_experiment-new_nav") == 2
    assert manager.save_feature_state("missing", FeatureState.ACTIVE) is None
    assert "elementor_experiment-missing" not in options.all_options()

    # A fresh registry seeded from the same store sees the override
    reloaded = ExperimentsManager(options)
    reloaded.add_feature(_feature(default=FeatureState.ACTIVE))
    assert reloaded.is_feature_active("new_nav") is False


def test_init_features_registers_builtin_then_fires_hook(manager, hooks):
    seen = []

    def register_more(mgr):
        seen.append(list(mgr.get_features()))
        mgr.add_feature({"name": "from_hook", "default": "active"})

    hooks.on(FEATURES_REGISTERED, register_more)
    manager.init_features()

    assert seen == [[f["name"] for f in BUILTIN_FEATURES]]
    assert list(manager.get_features()) == ["dom_optimization", "from_hook"]
    assert manager.is_feature_active("from_hook") is True


def test_builtin_dom_optimization(manager):
    manager.init_features()
    feature = manager.get_features("dom_optimization")
    assert feature.title == "Optimized DOM Output"
    assert feature.status is FeatureStatus.ALPHA
    assert feature.default is FeatureState.INACTIVE
    assert "Learn More</a>" in feature.description
    assert manager.is_feature_active("dom_optimization") is False


@pytest.mark.parametrize(
    "value,expected",
    [
        (FeatureState.ACTIVE, FeatureState.ACTIVE),
        (1, FeatureState.ACTIVE),
        ("2", FeatureState.INACTIVE),
        ("Default", FeatureState.DEFAULT),
        (" inactive ", FeatureState.INACTIVE),
    ],
)
def test_state_coerce(value, expected):
    assert FeatureState.coerce(value) is expected


@pytest.mark.parametrize("value", [3, "-1", "maybe", True, None, 1.5])
def test_state_coerce_rejects(value):
    with pytest.raises(ValueError):
        FeatureState.coerce(value)


def test_labels():
    assert FeatureStatus.BETA.label == "Beta"
    assert FeatureState.INACTIVE.label == "Inactive"
