"""Cluster construction and lifecycle.

Public API:
    ClusterRequest    - what to build
    Controller        - handle on a cluster (create, load, add/delete nodes, delete)
    Blueprint         - multi-phase construction with rollback
    BlueprintSettings - construction tunables
    BlueprintActors   - per-flavor hooks (BohActors, SwarmActors)
"""

from cumulus.cluster.actors import BlueprintActors, Requirements
from cumulus.cluster.blueprint import Blueprint, BlueprintSettings
from cumulus.cluster.controller import Controller
from cumulus.cluster.flavors import BohActors, SwarmActors, actors_for
from cumulus.cluster.metadata import ClusterMetadata
from cumulus.cluster.properties import (
    ClusterProperty,
    Composite,
    Defaults,
    Features,
    NetworkConfig,
    Nodes,
    State,
)
from cumulus.cluster.request import ClusterRequest
from cumulus.cluster.sizing import complement_host_definition

__all__ = [
    "Blueprint",
    "BlueprintActors",
    "BlueprintSettings",
    "BohActors",
    "ClusterMetadata",
    "ClusterProperty",
    "ClusterRequest",
    "Composite",
    "Controller",
    "Defaults",
    "Features",
    "NetworkConfig",
    "Nodes",
    "Requirements",
    "State",
    "SwarmActors",
    "actors_for",
    "complement_host_definition",
]
