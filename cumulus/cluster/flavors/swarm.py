"""Docker Swarm: managers on the masters, workers on the nodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cumulus.api.model import Complexity, Host, HostDefinition, NodeType
from cumulus.cluster.actors import BlueprintActors
from cumulus.core.exceptions import FeatureError
from cumulus.install.feature import HostTarget

if TYPE_CHECKING:
    from cumulus.cluster.controller import Controller

_SERVERS = {
    Complexity.SMALL: (1, 1, 0),
    Complexity.NORMAL: (3, 3, 0),
    Complexity.LARGE: (5, 3, 0),
}


class SwarmActors(BlueprintActors):
    def minimum_required_servers(self, cluster: Controller) -> tuple[int, int, int]:
        return _SERVERS[cluster.identity.complexity]

    def default_master_sizing(self, cluster: Controller) -> HostDefinition:
        return HostDefinition(cores=4, ram_size=8.0, disk_size=60)

    def default_node_sizing(self, cluster: Controller) -> HostDefinition:
        return HostDefinition(cores=4, ram_size=8.0, disk_size=100)

    async def configure_master(self, cluster: Controller, index: int, host: Host) -> None:
        # The first master initializes the swarm, the others join it
        leader = await cluster.list_master_ips()
        await cluster.install_feature(
            "swarm-manager",
            HostTarget.of(host),
            {"Index": index, "Leader": leader[0] if leader else host.private_ip},
        )

    async def configure_node(
        self, cluster: Controller, index: int, host: Host, node_type: NodeType,
    ) -> None:
        masters = await cluster.list_master_ips()
        if not masters:
            raise FeatureError("swarm-worker", f"host '{host.name}'", "no manager to join")
        await cluster.install_feature(
            "swarm-worker",
            HostTarget.of(host),
            {"Index": index, "Managers": masters},
        )
