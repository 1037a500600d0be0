"""Infrastructure providers and the services built on them.

Public API:
    InfrastructureProvider - provider protocol
    Memory, MemoryProvider - in-process provider
    HostService            - host creation/deletion plus host metadata
    NetworkService         - network + gateway creation with rollback
"""

from cumulus.providers.memory import Memory, MemoryProvider
from cumulus.providers.properties import HostMetadata, HostNetworking, HostProperty, HostSizing
from cumulus.providers.provider import InfrastructureProvider
from cumulus.providers.services import HostService, NetworkService, NetworkSpec
from cumulus.providers.wait import wait_for_ready

__all__ = [
    "HostMetadata",
    "HostNetworking",
    "HostProperty",
    "HostService",
    "HostSizing",
    "InfrastructureProvider",
    "Memory",
    "MemoryProvider",
    "NetworkService",
    "NetworkSpec",
    "wait_for_ready",
]
