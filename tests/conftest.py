"""Shared fixtures."""

import pytest

from featurelab.bootstrap import build_runtime
from featurelab.core.hooks import HookBus
from featurelab.experiments.manager import ExperimentsManager
from featurelab.storage.options import MemoryOptionStore
from featurelab.utils.config import Settings


def _make_settings(**overrides):
    data = {
        "options": {"backend": "memory"},
        "ADMIN_PASSWORD": "secret",
        "JWT_SECRET": "test-secret",
    }
    data.update(overrides)
    return Settings(**data)


@pytest.fixture
def make_settings():
    return _make_settings


@pytest.fixture
def settings():
    return _make_settings()


@pytest.fixture
def options():
    return MemoryOptionStore()


@pytest.fixture
def hooks():
    return HookBus()


@pytest.fixture
def manager(options, hooks):
    return ExperimentsManager(options, hooks)


@pytest.fixture
def runtime(settings, options):
    return build_runtime(settings, options=options)
