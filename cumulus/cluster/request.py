from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass

from cumulus.api.model import Complexity, Flavor, HostDefinition
from cumulus.core.exceptions import ConfigurationError

_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9-]{0,62}$")


@dataclass(frozen=True, slots=True)
class ClusterRequest:
    """What to build.

    Args:
        name: Cluster name; lower-cased before use.
        cidr: Address range of the cluster network.
        flavor: Topology family.
        complexity: Size tier, drives the number of servers.
        tenant: Tenant recorded in the Composite property group.
        node_sizing: Sizing override for nodes, merged with the flavor default.
        keep_on_failure: Keep every created resource when construction fails.
    """

    name: str
    cidr: str
    flavor: Flavor = Flavor.BOH
    complexity: Complexity = Complexity.SMALL
    tenant: str = ""
    node_sizing: HostDefinition | None = None
    keep_on_failure: bool = False

    def __post_init__(self) -> None:
        if not _NAME.match(self.name):
            raise ConfigurationError(
                f"Invalid cluster name '{self.name}': letters, digits and dashes, "
                "starting with a letter"
            )
        try:
            ipaddress.ip_network(self.cidr, strict=False)
        except ValueError as e:
            raise ConfigurationError(f"Invalid CIDR '{self.cidr}': {e}") from e

    @property
    def cluster_name(self) -> str:
        return self.name.lower()
