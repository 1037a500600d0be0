"""Domain model shared by the provider, metadata and cluster layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Literal


class Flavor(StrEnum):
    """Topology family of a cluster."""

    BOH = "boh"
    SWARM = "swarm"


class Complexity(StrEnum):
    """Size tier of a cluster; drives how many servers a flavor requires."""

    SMALL = "small"
    NORMAL = "normal"
    LARGE = "large"


class ClusterState(IntEnum):
    UNKNOWN = 0
    NOMINAL = 1
    DEGRADED = 2
    STOPPED = 3
    INITIALIZING = 4
    CREATING = 5
    CREATED = 6
    ERROR = 7
    REMOVED = 8


class NodeType(StrEnum):
    GATEWAY = "gateway"
    MASTER = "master"
    PRIVATE_NODE = "private"
    PUBLIC_NODE = "public"


class IPVersion(IntEnum):
    IPV4 = 4
    IPV6 = 6


type HostStatus = Literal["starting", "running", "stopped", "error"]


@dataclass(frozen=True, slots=True)
class HostDefinition:
    """Sizing request for a host.

    Zero / empty fields mean "not specified" and are filled in by
    complement_host_definition().
    """

    cores: int = 0
    ram_size: float = 0.0
    disk_size: int = 0
    image_id: str = ""
    gpu_count: int = 0
    cpu_freq: float = 0.0


@dataclass(frozen=True, slots=True)
class SizingRequirements:
    min_cores: int
    min_ram_size: float
    min_disk_size: int
    min_gpu: int = 0
    min_freq: float = 0.0


@dataclass(frozen=True, slots=True)
class Template:
    id: str
    name: str
    cores: int
    ram_size: float
    disk_size: int
    gpu_count: int = 0


@dataclass(frozen=True, slots=True)
class Image:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class KeyPair:
    id: str
    name: str
    public_key: str
    private_key: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class NetworkRequest:
    name: str
    cidr: str
    ip_version: IPVersion = IPVersion.IPV4
    dns_servers: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Network:
    id: str
    name: str
    cidr: str
    ip_version: IPVersion = IPVersion.IPV4
    gateway_id: str = ""


@dataclass(frozen=True, slots=True)
class HostRequest:
    name: str
    network_id: str
    template_id: str
    image_id: str
    public: bool = False
    keypair: KeyPair | None = None
    is_gateway: bool = False


@dataclass(frozen=True, slots=True)
class Host:
    id: str
    name: str
    network_id: str
    private_ip: str
    public_ip: str | None = None
    status: HostStatus = "starting"
    template_id: str = ""
    image_id: str = ""

    @property
    def access_ip(self) -> str:
        """IP to reach the host from outside the network."""
        return self.public_ip or self.private_ip


@dataclass(frozen=True, slots=True)
class Node:
    """A cluster member as recorded in the Nodes property group."""

    id: str
    name: str
    private_ip: str
    public_ip: str | None = None


@dataclass(slots=True)
class ClusterIdentity:
    name: str
    flavor: Flavor
    complexity: Complexity
    keypair: KeyPair | None = None
    admin_password: str = field(default="", repr=False)
