from __future__ import annotations

from dataclasses import dataclass

from cumulus.api.provider import ProviderConfig
from cumulus.providers.provider import InfrastructureProvider


@dataclass(frozen=True, slots=True)
class Tenant:
    """An authenticated account on one infrastructure provider.

    Args:
        name: Tenant name, recorded in each cluster's Composite group.
        provider: Provider configuration.
        dns_servers: DNS servers given to cluster networks and nodes.
        metadata_path: Directory of the metadata store. None keeps
            metadata in memory for the lifetime of the session.
        default_image: Image used when the flavor has no default.
    """

    name: str
    provider: ProviderConfig[InfrastructureProvider]
    dns_servers: tuple[str, ...] = ()
    metadata_path: str | None = None
    default_image: str | None = None
