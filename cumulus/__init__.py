"""Cumulus - clusters as a service on pluggable infrastructure providers.

Example:

    import cumulus as cc

    tenant = cc.Tenant("dev", provider=cc.Memory(), dns_servers=("1.1.1.1",))
    session = await cc.Session.open(tenant)

    request = cc.ClusterRequest(
        "demo",
        "192.168.10.0/24",
        flavor=cc.Flavor.SWARM,
        complexity=cc.Complexity.NORMAL,
    )
    cluster = await cc.create_cluster(request, session)
    await cluster.add_nodes(2)
    await cc.delete_cluster("demo", session)
"""

# Domain model
from cumulus.api import (
    ClusterIdentity,
    ClusterState,
    Complexity,
    Flavor,
    Host,
    HostDefinition,
    Image,
    KeyPair,
    Network,
    Node,
    NodeType,
    ProviderConfig,
    Template,
)

# Clusters
from cumulus.cluster import (
    Blueprint,
    BlueprintActors,
    BlueprintSettings,
    ClusterProperty,
    ClusterRequest,
    Controller,
    complement_host_definition,
)

# Configuration
from cumulus.config import load_config, resolve_request, resolve_tenant
from cumulus.context import CancelToken

# Errors
from cumulus.core.exceptions import (
    AggregateError,
    ConfigurationError,
    ConstructionCancelledError,
    CumulusError,
    FeatureError,
    MetadataError,
    NoTemplateError,
    NotFoundError,
    ProviderError,
)

# Top-level operations
from cumulus.facade import create_cluster, delete_cluster, load_cluster

# Feature installation
from cumulus.install import ClusterTarget, FeatureInstaller, HostTarget, LocalInstaller

# Logging
from cumulus.logging import LogConfig

# Metadata
from cumulus.metadata import DiskBucket, MemoryBucket, MetadataBucket

# Providers
from cumulus.providers import InfrastructureProvider, Memory, MemoryProvider
from cumulus.session import Session
from cumulus.tenant import Tenant

__version__ = "0.1.0"

__all__ = [
    "AggregateError",
    "Blueprint",
    "BlueprintActors",
    "BlueprintSettings",
    "CancelToken",
    "ClusterIdentity",
    "ClusterProperty",
    "ClusterRequest",
    "ClusterState",
    "ClusterTarget",
    "Complexity",
    "ConfigurationError",
    "ConstructionCancelledError",
    "Controller",
    "CumulusError",
    "DiskBucket",
    "FeatureError",
    "FeatureInstaller",
    "Flavor",
    "Host",
    "HostDefinition",
    "HostTarget",
    "Image",
    "InfrastructureProvider",
    "KeyPair",
    "LocalInstaller",
    "LogConfig",
    "Memory",
    "MemoryBucket",
    "MemoryProvider",
    "MetadataBucket",
    "MetadataError",
    "Network",
    "Node",
    "NodeType",
    "NoTemplateError",
    "NotFoundError",
    "ProviderConfig",
    "ProviderError",
    "Session",
    "Template",
    "Tenant",
    "complement_host_definition",
    "create_cluster",
    "delete_cluster",
    "load_cluster",
    "load_config",
    "resolve_request",
    "resolve_tenant",
]
