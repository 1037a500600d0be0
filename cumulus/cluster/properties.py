"""Property groups of a cluster entity."""

from __future__ import annotations

from dataclasses import dataclass, field

from cumulus.api.model import ClusterState, HostDefinition, Node, NodeType
from cumulus.metadata.properties import PropertyKey


@dataclass(slots=True)
class Defaults:
    """Sizings and image the cluster was built with, reused by add_nodes()."""

    gateway_sizing: HostDefinition = HostDefinition()
    master_sizing: HostDefinition = HostDefinition()
    node_sizing: HostDefinition = HostDefinition()
    image: str = ""


@dataclass(slots=True)
class State:
    state: ClusterState = ClusterState.UNKNOWN


@dataclass(slots=True)
class Composite:
    tenants: list[str] = field(default_factory=list)


@dataclass(slots=True)
class NetworkConfig:
    network_id: str = ""
    gateway_id: str = ""
    gateway_ip: str = ""
    public_ip: str = ""
    cidr: str = ""


@dataclass(slots=True)
class Nodes:
    masters: list[Node] = field(default_factory=list)
    private_nodes: list[Node] = field(default_factory=list)
    public_nodes: list[Node] = field(default_factory=list)
    master_last_index: int = 0
    private_last_index: int = 0
    public_last_index: int = 0

    def members(self, node_type: NodeType) -> list[Node]:
        match node_type:
            case NodeType.MASTER:
                return self.masters
            case NodeType.PRIVATE_NODE:
                return self.private_nodes
            case NodeType.PUBLIC_NODE:
                return self.public_nodes
            case _:
                raise ValueError(f"Invalid node type '{node_type}'")

    def next_index(self, node_type: NodeType) -> int:
        match node_type:
            case NodeType.MASTER:
                self.master_last_index += 1
                return self.master_last_index
            case NodeType.PRIVATE_NODE:
                self.private_last_index += 1
                return self.private_last_index
            case NodeType.PUBLIC_NODE:
                self.public_last_index += 1
                return self.public_last_index
            case _:
                raise ValueError(f"Invalid node type '{node_type}'")

    def remove(self, node_id: str) -> Node | None:
        for members in (self.masters, self.private_nodes, self.public_nodes):
            for i, node in enumerate(members):
                if node.id == node_id:
                    return members.pop(i)
        return None

    def type_of(self, node_id: str) -> NodeType | None:
        for node_type in (NodeType.MASTER, NodeType.PRIVATE_NODE, NodeType.PUBLIC_NODE):
            if any(n.id == node_id for n in self.members(node_type)):
                return node_type
        return None


@dataclass(slots=True)
class Features:
    installed: dict[str, list[str]] = field(default_factory=dict)
    disabled: set[str] = field(default_factory=set)


class ClusterProperty:
    DEFAULTS_V1 = PropertyKey("defaults", 1, Defaults)
    STATE_V1 = PropertyKey("state", 1, State)
    COMPOSITE_V1 = PropertyKey("composite", 1, Composite)
    NETWORK_V1 = PropertyKey("network", 1, NetworkConfig)
    NODES_V1 = PropertyKey("nodes", 1, Nodes)
    FEATURES_V1 = PropertyKey("features", 1, Features)

    ALL = (DEFAULTS_V1, STATE_V1, COMPOSITE_V1, NETWORK_V1, NODES_V1, FEATURES_V1)
