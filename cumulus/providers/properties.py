"""Host-level metadata: the host record plus its property groups."""

from __future__ import annotations

from dataclasses import dataclass

from cumulus.api.model import Host, HostDefinition
from cumulus.metadata.bucket import MetadataBucket
from cumulus.metadata.entity import Metadata
from cumulus.metadata.properties import PropertyKey


@dataclass(slots=True)
class HostSizing:
    requested: HostDefinition = HostDefinition()
    template_id: str = ""


@dataclass(slots=True)
class HostNetworking:
    network_id: str = ""
    is_gateway: bool = False
    private_ip: str = ""
    public_ip: str | None = None


class HostProperty:
    SIZING_V1 = PropertyKey("sizing", 1, HostSizing)
    NETWORK_V1 = PropertyKey("network", 1, HostNetworking)

    ALL = (SIZING_V1, NETWORK_V1)


class HostMetadata(Metadata[Host]):
    """Metadata of one host, stored under ``hosts/<id>``."""

    def __init__(self, bucket: MetadataBucket, host_id: str, host: Host | None = None) -> None:
        super().__init__(bucket, f"hosts/{host_id}", HostProperty.ALL, record=host)
        self.host_id = host_id

    @property
    def host(self) -> Host:
        return self.record
