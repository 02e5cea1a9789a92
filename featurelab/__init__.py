"""
FeatureLab - Experiment Registry

Registers named experimental features, persists per-feature on/off
overrides in the site option store, and exposes an admin settings page
with a Default/Active/Inactive selector for each experiment.
"""

__version__ = "0.1.0"
