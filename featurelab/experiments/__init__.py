"""Experiment (feature flag) registry."""

from .builtin import BUILTIN_FEATURES
from .manager import ExperimentsManager, Feature, FeatureState, FeatureStatus

__all__ = ["BUILTIN_FEATURES", "ExperimentsManager", "Feature", "FeatureState", "FeatureStatus"]
