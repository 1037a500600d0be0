"""BOH ("bunch of hosts"): plain hosts behind a gateway, no orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cumulus.api.model import Complexity, HostDefinition, NodeType
from cumulus.cluster.actors import BlueprintActors, Requirements

if TYPE_CHECKING:
    from cumulus.cluster.controller import Controller

_SERVERS = {
    Complexity.SMALL: (1, 1, 0),
    Complexity.NORMAL: (1, 3, 0),
    Complexity.LARGE: (3, 7, 0),
}


class BohActors(BlueprintActors):
    def minimum_required_servers(self, cluster: Controller) -> tuple[int, int, int]:
        return _SERVERS[cluster.identity.complexity]

    def default_gateway_sizing(self, cluster: Controller) -> HostDefinition:
        return HostDefinition(cores=2, ram_size=3.5, disk_size=16)

    def default_master_sizing(self, cluster: Controller) -> HostDefinition:
        return HostDefinition(cores=2, ram_size=3.5, disk_size=60)

    def default_node_sizing(self, cluster: Controller) -> HostDefinition:
        return HostDefinition(cores=2, ram_size=3.5, disk_size=60)

    def node_requirements(self, cluster: Controller, node_type: NodeType) -> Requirements | None:
        if node_type is NodeType.GATEWAY:
            return None
        return Requirements("boh-requirements", {"NodeType": str(node_type)})
