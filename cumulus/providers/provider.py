from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from cumulus.api.model import (
    Host,
    HostRequest,
    Image,
    KeyPair,
    Network,
    NetworkRequest,
    SizingRequirements,
    Template,
)


@runtime_checkable
class InfrastructureProvider(Protocol):
    """Interface for infrastructure operations consumed by cumulus.

    Implementations wrap an already-authenticated provider session
    (OpenStack, libvirt, proprietary IaaS). Every method is a suspension
    point: callers await it and are not interrupted while it runs.
    Missing resources raise NotFoundError; other failures raise
    ProviderError or the adapter's own exceptions (converted to
    ProviderError at the service layer).
    """

    async def create_network(self, request: NetworkRequest) -> Network:
        """Create an isolated network.

        Parameters
        ----------
        request
            Name, CIDR, IP version and DNS servers of the network.

        Returns
        -------
        Network
            The created network, without gateway yet.
        """
        ...

    async def get_network(self, ref: str) -> Network:
        """Return the network identified by ID or name."""
        ...

    async def list_networks(self) -> Sequence[Network]: ...

    async def delete_network(self, network_id: str) -> None:
        """Delete a network. Every attached host, gateway included, must be gone."""
        ...

    async def create_host(self, request: HostRequest) -> Host:
        """Create a host attached to a network.

        Parameters
        ----------
        request
            Name, network, template, image, public IP flag and keypair.
            When ``is_gateway`` is set the host becomes the network's gateway.

        Returns
        -------
        Host
            The created host, possibly still in "starting" status.
        """
        ...

    async def get_host(self, ref: str) -> Host:
        """Return the host identified by ID or name."""
        ...

    async def list_hosts(self) -> Sequence[Host]: ...

    async def delete_host(self, host_id: str) -> None: ...

    async def create_keypair(self, name: str) -> KeyPair: ...

    async def delete_keypair(self, ref: str) -> None:
        """Delete the keypair identified by ID or name."""
        ...

    async def list_keypairs(self) -> Sequence[KeyPair]: ...

    async def select_templates_by_size(
        self, requirements: SizingRequirements,
    ) -> Sequence[Template]:
        """Templates satisfying the requirements, smallest first."""
        ...

    async def search_image(self, name: str) -> Image:
        """Return the image matching name (or ID)."""
        ...
