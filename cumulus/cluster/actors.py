"""Per-flavor capabilities plugged into the Blueprint.

Every hook has a no-op default, so a flavor only overrides what it needs.
Hooks receive the Controller of the cluster being built.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from cumulus.api.model import ClusterState, Host, HostDefinition, NodeType
from cumulus.cluster.properties import ClusterProperty

if TYPE_CHECKING:
    from cumulus.cluster.controller import Controller


@dataclass(frozen=True, slots=True)
class Requirements:
    """Feature installing the system requirements of one node type."""

    feature: str
    variables: Mapping[str, Any] = field(default_factory=dict)


class BlueprintActors:
    def minimum_required_servers(self, cluster: Controller) -> tuple[int, int, int]:
        """Return (masters, private nodes, public nodes) for the cluster complexity."""
        return 0, 0, 0

    def default_gateway_sizing(self, cluster: Controller) -> HostDefinition | None:
        return None

    def default_master_sizing(self, cluster: Controller) -> HostDefinition | None:
        return None

    def default_node_sizing(self, cluster: Controller) -> HostDefinition | None:
        return None

    def default_image(self, cluster: Controller) -> str | None:
        return None

    def node_requirements(self, cluster: Controller, node_type: NodeType) -> Requirements | None:
        return None

    async def global_system_requirements(self, cluster: Controller) -> str:
        return ""

    async def configure_gateway(self, cluster: Controller) -> None:
        pass

    async def configure_master(self, cluster: Controller, index: int, host: Host) -> None:
        pass

    async def unconfigure_master(self, cluster: Controller, host_id: str) -> None:
        pass

    async def configure_node(
        self, cluster: Controller, index: int, host: Host, node_type: NodeType,
    ) -> None:
        pass

    async def unconfigure_node(self, cluster: Controller, host_id: str, master_id: str | None) -> None:
        pass

    async def configure_cluster(self, cluster: Controller) -> None:
        pass

    async def unconfigure_cluster(self, cluster: Controller) -> None:
        pass

    async def get_state(self, cluster: Controller) -> ClusterState:
        return await cluster.properties.lock_for_read(ClusterProperty.STATE_V1).then_use(
            lambda s: s.state
        )
