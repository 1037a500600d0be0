from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest
import pytest_asyncio

from cumulus import (
    BlueprintActors,
    BlueprintSettings,
    Host,
    LocalInstaller,
    Memory,
    MemoryBucket,
    NodeType,
    Session,
    Tenant,
)
from cumulus.cluster.controller import Controller


@dataclass
class StubActors(BlueprintActors):
    """Actors with configurable topology that record the configuration order."""

    masters: int = 1
    private_nodes: int = 1
    public_nodes: int = 0
    delay: float = 0.0
    fail: dict[str, str] = field(default_factory=dict)
    events: list[str] = field(default_factory=list)

    def minimum_required_servers(self, cluster: Controller) -> tuple[int, int, int]:
        return self.masters, self.private_nodes, self.public_nodes

    async def _step(self, name: str) -> None:
        self.events.append(f"{name}:start")
        await asyncio.sleep(self.delay)
        if name in self.fail:
            raise RuntimeError(self.fail[name])
        self.events.append(f"{name}:end")

    async def configure_gateway(self, cluster: Controller) -> None:
        await self._step("gateway")

    async def configure_master(self, cluster: Controller, index: int, host: Host) -> None:
        await self._step(f"master-{index}")

    async def configure_node(
        self, cluster: Controller, index: int, host: Host, node_type: NodeType,
    ) -> None:
        await self._step(f"{node_type}-{index}")

    async def configure_cluster(self, cluster: Controller) -> None:
        await self._step("cluster")


@pytest.fixture
def bucket() -> MemoryBucket:
    return MemoryBucket()


@pytest.fixture
def installer() -> LocalInstaller:
    return LocalInstaller()


@pytest.fixture
def tenant() -> Tenant:
    return Tenant("test", provider=Memory(), dns_servers=("10.0.0.53",))


@pytest.fixture
def settings() -> BlueprintSettings:
    return BlueprintSettings(poll_interval=0.01, gateway_ready_timeout=2.0)


@pytest_asyncio.fixture
async def session(
    tenant: Tenant,
    installer: LocalInstaller,
    settings: BlueprintSettings,
    bucket: MemoryBucket,
) -> Session:
    return await Session.open(tenant, installer=installer, settings=settings, bucket=bucket)


@pytest.fixture
def provider(session: Session):
    return session.provider
