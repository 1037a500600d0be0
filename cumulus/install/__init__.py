"""Feature installation: protocols, targets, results and a local installer."""

from cumulus.install.feature import (
    ClusterTarget,
    Feature,
    FeatureInstaller,
    HostTarget,
    Results,
    Settings,
    StepResult,
    Target,
    Variables,
)
from cumulus.install.local import Installation, LocalInstaller

__all__ = [
    "ClusterTarget",
    "Feature",
    "FeatureInstaller",
    "HostTarget",
    "Installation",
    "LocalInstaller",
    "Results",
    "Settings",
    "StepResult",
    "Target",
    "Variables",
]
