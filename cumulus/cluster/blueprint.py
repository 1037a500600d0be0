"""Cluster construction.

The Blueprint builds a cluster in six phases:

1. network, gateway and admin keypair
2. cluster metadata seed (state CREATING)
3. gateway installation, master creation and node creation, concurrently;
   node creation keeps running in the background while the next phase starts
4. gateway configuration, then master configuration
5. private and public node configuration
6. cluster-wide configuration (state CREATED)

Every created resource registers a compensating action on an AsyncExitStack.
When construction fails and keep_on_failure is not set, the stack unwinds:
nodes, masters, network (with gateway and gateway keypair), admin keypair,
then cluster metadata.
"""

from __future__ import annotations

import asyncio
import secrets
import string
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from loguru import logger

from cumulus.api.model import ClusterState, Host, HostDefinition, Node, NodeType
from cumulus.cluster.actors import BlueprintActors
from cumulus.cluster.properties import ClusterProperty
from cumulus.cluster.request import ClusterRequest
from cumulus.cluster.sizing import complement_host_definition
from cumulus.context import CancelToken
from cumulus.core.exceptions import CumulusError, NotFoundError, ProviderError
from cumulus.install.feature import ClusterTarget, HostTarget
from cumulus.internal.decorators import audit
from cumulus.providers.services import NetworkSpec
from cumulus.utils.conc import fan_out, gather_all, raise_for_errors, status_of

if TYPE_CHECKING:
    from cumulus.cluster.controller import Controller

log = logger.bind(component="blueprint")

DEFAULT_IMAGE = "Ubuntu 18.04"
ADMIN_USER = "cladm"
ADMIN_PASSWORD_LENGTH = 16

_HOSTNAME_CORE = {
    NodeType.MASTER: "master",
    NodeType.PRIVATE_NODE: "node",
    NodeType.PUBLIC_NODE: "pubnode",
}


@dataclass(frozen=True, slots=True)
class BlueprintSettings:
    """Tunables of cluster construction.

    Attributes:
        disable_proxycache: Mark the proxy cache as disabled before each
            proxycache-client/server installation, so it is never installed.
        max_concurrent_provider_calls: Bound on concurrent host creations.
        host_timeout: Seconds allowed for one host creation.
        host_timeout_per_sibling: Extra seconds per host created in the same batch.
        gateway_ready_timeout: Seconds to wait for the gateway to be running.
        poll_interval: Seconds between readiness polls.
    """

    disable_proxycache: bool = True
    max_concurrent_provider_calls: int = 16
    host_timeout: float = 600.0
    host_timeout_per_sibling: float = 60.0
    gateway_ready_timeout: float = 300.0
    poll_interval: float = 1.0


def generate_password(length: int = ADMIN_PASSWORD_LENGTH) -> str:
    alphabet = string.ascii_letters + string.digits + "-_.+"
    return "".join(secrets.choice(alphabet) for _ in range(length))


class Blueprint:
    def __init__(self, cluster: Controller, actors: BlueprintActors | None = None) -> None:
        self.cluster = cluster
        self.actors = actors or cluster.actors
        self._session = cluster.session
        self._token = CancelToken()
        self._keep_on_failure = False

    @property
    def settings(self) -> BlueprintSettings:
        return self._session.settings

    @property
    def name(self) -> str:
        return self.cluster.name

    # -- construction -----------------------------------------------------

    @audit("Blueprint.construct")
    async def construct(self, request: ClusterRequest, token: CancelToken | None = None) -> None:
        """Build the cluster described by request.

        Raises:
            CumulusError: The first failure, in phase order. Unless
                request.keep_on_failure is set, every created resource has
                been deleted by the time it propagates.
        """
        self._token = token or CancelToken()
        self._keep_on_failure = request.keep_on_failure
        log.info("Constructing cluster {name}", name=self.name)

        try:
            async with AsyncExitStack() as rollback:
                await self._construct(request, rollback)
                rollback.pop_all()
        except Exception as e:
            e.add_note(f"[cluster {self.name}] construction failed")
            log.error("[cluster {name}] construction failed: {err}", name=self.name, err=e)
            if self._keep_on_failure:
                await self._mark_failed()
            raise

        log.info("Cluster {name} constructed", name=self.name)

    def _on_failure(
        self,
        stack: AsyncExitStack,
        what: str,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> None:
        if self._keep_on_failure:
            return
        stack.push_async_callback(self._compensate, what, fn, *args)

    async def _compensate(self, what: str, fn: Callable[..., Awaitable[Any]], *args: Any) -> None:
        try:
            await fn(*args)
            log.debug("[cluster {name}] rolled back {what}", name=self.name, what=what)
        except Exception as e:
            log.opt(exception=True).error(
                "[cluster {name}] failed to roll back {what}: {err}", name=self.name, what=what, err=e,
            )

    async def _construct(self, request: ClusterRequest, rollback: AsyncExitStack) -> None:
        session = self._session
        cluster = self.cluster
        name = self.name

        # Registered first so that it runs last
        self._on_failure(rollback, "cluster metadata", cluster.metadata.delete)
        self._on_failure(rollback, "admin keypair", self._delete_admin_keypair)

        # Phase 1: network, gateway, admin keypair
        password = generate_password()
        image = self.actors.default_image(cluster) or session.tenant.default_image or DEFAULT_IMAGE
        gateway_def, master_def, node_def = self._sizings(request, image)

        network_name = f"net-{name}"
        log.debug("[cluster {name}] creating network {net}", name=name, net=network_name)
        network = await session.networks.create(
            NetworkSpec(
                name=network_name,
                cidr=request.cidr,
                gateway=gateway_def,
                dns_servers=session.tenant.dns_servers,
            )
        )
        self._on_failure(rollback, f"network {network_name}", session.networks.delete, network.id)

        gateway_meta = await session.hosts.metadata(network.gateway_id)
        gateway = gateway_meta.host
        await session.hosts.wait_ready(
            gateway.id,
            timeout=self.settings.gateway_ready_timeout,
            interval=self.settings.poll_interval,
        )

        keypair = await session.provider.create_keypair(f"cluster_{name}_cladm_key")
        self._token.raise_if_cancelled()

        # Phase 2: metadata seed
        identity = cluster.identity
        identity.keypair = keypair
        identity.admin_password = password
        properties = cluster.properties
        async with properties.lock_for_write(ClusterProperty.DEFAULTS_V1) as defaults:
            defaults.gateway_sizing = gateway_def
            defaults.master_sizing = master_def
            defaults.node_sizing = node_def
            defaults.image = image
        async with properties.lock_for_write(ClusterProperty.STATE_V1) as state:
            state.state = ClusterState.CREATING
        async with properties.lock_for_write(ClusterProperty.COMPOSITE_V1) as composite:
            composite.tenants = [request.tenant or session.tenant.name]
        async with properties.lock_for_write(ClusterProperty.NETWORK_V1) as net:
            net.network_id = network.id
            net.gateway_id = gateway.id
            net.gateway_ip = gateway.private_ip
            net.public_ip = gateway.access_ip
            net.cidr = request.cidr
        await cluster.metadata.write()
        self._token.raise_if_cancelled()

        # Phase 3: gateway installation, masters and nodes creation
        masters, private_nodes, public_nodes = self.actors.minimum_required_servers(cluster)
        gateway_task = asyncio.create_task(self._install_gateway(gateway))
        masters_task = asyncio.create_task(self.create_masters(masters, master_def))
        private_task = asyncio.create_task(self.create_nodes(private_nodes, False, node_def))
        public_task = asyncio.create_task(self.create_nodes(public_nodes, True, node_def))

        self._on_failure(rollback, "masters", self._delete_members, NodeType.MASTER)
        self._on_failure(rollback, "nodes", self._delete_members_of, NodeType.PRIVATE_NODE, NodeType.PUBLIC_NODE)
        # Unwinds first: phase 3 tasks finish before members are listed
        rollback.push_async_callback(self._join, gateway_task, masters_task, private_task, public_task)

        gateway_status = await status_of(gateway_task)
        masters_status = await status_of(masters_task)

        # Phase 4: gateway then masters configuration
        if gateway_status is None and masters_status is None:
            gateway_status = await status_of(self._configure_gateway(gateway))
        if gateway_status is None and masters_status is None:
            masters_status = await status_of(self.configure_masters())

        private_status = await status_of(private_task)
        public_status = await status_of(public_task)

        # Phase 5: nodes configuration
        if gateway_status is None and masters_status is None:
            pending: list[tuple[NodeType, Awaitable[None]]] = []
            if private_status is None:
                pending.append((NodeType.PRIVATE_NODE, self.configure_nodes(False)))
            if public_status is None:
                pending.append((NodeType.PUBLIC_NODE, self.configure_nodes(True)))
            results = await gather_all(aw for _, aw in pending)
            for (node_type, _), result in zip(pending, results, strict=True):
                if not isinstance(result, Exception):
                    continue
                if node_type is NodeType.PRIVATE_NODE:
                    private_status = result
                else:
                    public_status = result

        for status in (gateway_status, masters_status, private_status, public_status):
            if status is not None:
                raise status
        self._token.raise_if_cancelled()

        # Phase 6: cluster-wide configuration
        await self._configure_cluster()
        async with properties.lock_for_write(ClusterProperty.STATE_V1) as state:
            state.state = ClusterState.CREATED

    def _sizings(
        self, request: ClusterRequest, image: str,
    ) -> tuple[HostDefinition, HostDefinition, HostDefinition]:
        cluster = self.cluster

        gateway_def = self.actors.default_gateway_sizing(cluster)
        gateway_def = (
            replace(gateway_def, image_id=image) if gateway_def
            else HostDefinition(cores=2, ram_size=7.0, disk_size=60, image_id=image)
        )

        master_def = self.actors.default_master_sizing(cluster)
        master_def = (
            replace(master_def, image_id=image) if master_def
            else HostDefinition(cores=4, ram_size=15.0, disk_size=100, image_id=image)
        )

        node_def = self.actors.default_node_sizing(cluster)
        node_def = (
            replace(node_def, image_id=image) if node_def
            else HostDefinition(cores=4, ram_size=15.0, disk_size=100, image_id=image)
        )
        node_def = complement_host_definition(request.node_sizing, node_def)
        if not node_def.image_id:
            node_def = replace(node_def, image_id=image)

        return gateway_def, master_def, node_def

    async def _mark_failed(self) -> None:
        try:
            if await self.cluster.metadata.exists():
                async with self.cluster.properties.lock_for_write(ClusterProperty.STATE_V1) as state:
                    state.state = ClusterState.ERROR
        except Exception as e:
            log.error("[cluster {name}] failed to record error state: {err}", name=self.name, err=e)

    # -- rollback ---------------------------------------------------------

    async def _delete_admin_keypair(self) -> None:
        try:
            await self._session.provider.delete_keypair(f"cluster_{self.name}_cladm_key")
        except NotFoundError:
            pass

    async def _delete_members(self, node_type: NodeType) -> None:
        nodes = await self.cluster.properties.lock_for_read(ClusterProperty.NODES_V1).then_use(
            lambda n: list(n.members(node_type))
        )
        raise_for_errors(await gather_all(self._session.hosts.delete(n.id) for n in nodes))

    async def _delete_members_of(self, *node_types: NodeType) -> None:
        for node_type in node_types:
            await self._compensate(f"{node_type} nodes", self._delete_members, node_type)

    @staticmethod
    async def _join(*tasks: asyncio.Task[Any]) -> None:
        await asyncio.gather(*tasks, return_exceptions=True)

    # -- per-host creation ------------------------------------------------

    async def build_hostname(self, node_type: NodeType) -> str:
        """Allocate the next hostname of node_type, e.g. ``demo-node-3``."""
        core = _HOSTNAME_CORE.get(node_type)
        if core is None:
            raise ValueError(f"Invalid node type '{node_type}'")
        index = await self.cluster.properties.lock_for_write(ClusterProperty.NODES_V1).then_use(
            lambda nodes: nodes.next_index(node_type)
        )
        return f"{self.name}-{core}-{index}"

    async def create_masters(self, count: int, definition: HostDefinition) -> None:
        if count <= 0:
            log.debug("[cluster {name}] no masters to create", name=self.name)
            return
        log.debug("[cluster {name}] creating {n} master(s)", name=self.name, n=count)
        timeout = self._host_timeout(count)
        await fan_out(count, lambda i: self._create_host(i, NodeType.MASTER, definition, timeout))
        log.debug("[cluster {name}] masters created", name=self.name)

    async def create_nodes(
        self,
        count: int,
        public: bool,
        definition: HostDefinition,
        created: list[Node] | None = None,
    ) -> list[Node]:
        """Create count nodes concurrently.

        Args:
            created: Receives each node as soon as it exists, so the caller
                knows which hosts this call made even when it fails.
        """
        node_type = NodeType.PUBLIC_NODE if public else NodeType.PRIVATE_NODE
        nodes: list[Node] = [] if created is None else created
        if count <= 0:
            log.debug("[cluster {name}] no {kind} nodes to create", name=self.name, kind=node_type)
            return nodes
        log.debug("[cluster {name}] creating {n} {kind} node(s)", name=self.name, n=count, kind=node_type)
        timeout = self._host_timeout(count)

        async def create(index: int) -> None:
            nodes.append(await self._create_host(index, node_type, definition, timeout))

        raise_for_errors(await gather_all(create(i) for i in range(1, count + 1)))
        return nodes

    def _host_timeout(self, siblings: int) -> float:
        return self.settings.host_timeout + siblings * self.settings.host_timeout_per_sibling

    async def _create_host(
        self, index: int, node_type: NodeType, definition: HostDefinition, timeout: float,
    ) -> Node:
        label = f"{node_type} #{index}" if node_type is NodeType.MASTER else f"{node_type} node #{index}"
        hosts = self._session.hosts

        try:
            async with AsyncExitStack() as undo:
                hostname = await self.build_hostname(node_type)
                network_id = (await self.cluster.network_config()).network_id
                try:
                    async with asyncio.timeout(timeout):
                        host = await hosts.create(
                            hostname,
                            network_id,
                            definition,
                            public=node_type is NodeType.PUBLIC_NODE,
                        )
                except TimeoutError as e:
                    raise ProviderError(f"timeout creating host '{hostname}' after {timeout:.0f}s") from e
                self._on_failure(undo, f"host {host.name}", hosts.delete, host.id)

                label = f"{label} ({host.name})"
                node = Node(id=host.id, name=host.name, private_ip=host.private_ip, public_ip=host.public_ip)
                async with self.cluster.properties.lock_for_write(ClusterProperty.NODES_V1) as nodes:
                    nodes.members(node_type).append(node)
                self._on_failure(undo, f"record of {host.name}", self._remove_record, node.id)

                self._token.raise_if_cancelled()
                await self._install_proxycache("proxycache-client", host, label)
                await self._install_requirements(node_type, host, label)
                undo.pop_all()
        except Exception as e:
            e.add_note(f"[{label}]")
            log.error("[{label}] creation failed: {err}", label=label, err=e)
            raise

        log.debug("[{label}] created", label=label)
        return node

    async def _remove_record(self, node_id: str) -> None:
        async with self.cluster.properties.lock_for_write(ClusterProperty.NODES_V1) as nodes:
            nodes.remove(node_id)

    # -- features ---------------------------------------------------------

    async def _feature_disabled(self, name: str) -> bool:
        return await self.cluster.properties.lock_for_read(ClusterProperty.FEATURES_V1).then_use(
            lambda f: name in f.disabled
        )

    async def _install_proxycache(self, feature: str, host: Host, label: str) -> None:
        if self.settings.disable_proxycache:
            async with self.cluster.properties.lock_for_write(ClusterProperty.FEATURES_V1) as f:
                f.disabled.add("proxycache")
        if await self._feature_disabled("proxycache"):
            return
        log.debug("[{label}] adding feature {feature}", label=label, feature=feature)
        await self.cluster.install_feature(feature, HostTarget.of(host))

    async def _install_requirements(self, node_type: NodeType, host: Host, label: str) -> None:
        requirements = self.actors.node_requirements(self.cluster, node_type)
        if requirements is None:
            return
        log.debug("[{label}] installing system requirements", label=label)
        identity = self.cluster.identity
        variables = {
            **requirements.variables,
            "GlobalSystemRequirements": await self.actors.global_system_requirements(self.cluster),
            "ClusterName": identity.name,
            "DNSServerIPs": list(self._session.tenant.dns_servers),
            "MasterIPs": await self.cluster.list_master_ips(),
            "CladmPassword": identity.admin_password,
        }
        await self.cluster.install_feature(requirements.feature, HostTarget.of(host), variables)

    # -- gateway ----------------------------------------------------------

    async def _install_gateway(self, gateway: Host) -> None:
        label = "gateway"
        log.debug("[{label}] starting installation", label=label)
        try:
            await self._install_proxycache("proxycache-server", gateway, label)
            await self._install_requirements(NodeType.GATEWAY, gateway, label)
            if not await self._feature_disabled("reverseproxy"):
                await self.cluster.install_feature("reverseproxy", HostTarget.of(gateway))
        except Exception as e:
            log.error("[{label}] installation failed: {err}", label=label, err=e)
            raise
        log.debug("[{label}] installation successful", label=label)

    async def _configure_gateway(self, gateway: Host) -> None:
        log.debug("[gateway] starting configuration")
        await self.cluster.install_feature("docker", HostTarget.of(gateway))
        await self.actors.configure_gateway(self.cluster)
        log.debug("[gateway] configuration successful")

    # -- configuration ----------------------------------------------------

    async def _inspect_all(self, ids: list[str]) -> list[Host]:
        hosts: list[Host] = []
        for host_id in ids:
            try:
                hosts.append(await self._session.hosts.inspect(host_id))
            except CumulusError as e:
                raise ProviderError(f"failed to get metadata of host '{host_id}': {e}") from e
        return hosts

    async def configure_masters(self) -> None:
        hosts = await self._inspect_all(await self.cluster.list_master_ids())
        if not hosts:
            return
        log.debug("[cluster {name}] configuring masters", name=self.name)
        await fan_out(len(hosts), lambda i: self._configure_master(i, hosts[i - 1]))
        log.debug("[cluster {name}] masters configuration successful", name=self.name)

    async def _configure_master(self, index: int, host: Host) -> None:
        label = f"master #{index} ({host.name})"
        try:
            await self.cluster.install_feature("docker", HostTarget.of(host))
            await self.actors.configure_master(self.cluster, index, host)
        except Exception as e:
            log.error("[{label}] configuration failed: {err}", label=label, err=e)
            raise

    async def configure_nodes(self, public: bool, ids: list[str] | None = None) -> None:
        node_type = NodeType.PUBLIC_NODE if public else NodeType.PRIVATE_NODE
        if ids is None:
            ids = await self.cluster.list_node_ids(public)
        hosts = await self._inspect_all(ids)
        if not hosts:
            log.debug("[cluster {name}] no {kind} nodes to configure", name=self.name, kind=node_type)
            return
        log.debug("[cluster {name}] configuring {kind} nodes", name=self.name, kind=node_type)
        await fan_out(len(hosts), lambda i: self._configure_node(i, hosts[i - 1], node_type))

    async def _configure_node(self, index: int, host: Host, node_type: NodeType) -> None:
        label = f"{node_type} node #{index} ({host.name})"
        try:
            await self.cluster.install_feature("docker", HostTarget.of(host))
            await self.actors.configure_node(self.cluster, index, host, node_type)
        except Exception as e:
            log.error("[{label}] configuration failed: {err}", label=label, err=e)
            raise

    async def _configure_cluster(self) -> None:
        await self._install_remote_desktop()
        await self.actors.configure_cluster(self.cluster)

    async def _install_remote_desktop(self) -> None:
        if await self._feature_disabled("remotedesktop"):
            return
        masters = await self.cluster.properties.lock_for_read(ClusterProperty.NODES_V1).then_use(
            lambda n: tuple(n.masters)
        )
        if not masters:
            log.debug("[cluster {name}] no master, skipping remotedesktop", name=self.name)
            return
        log.debug("[cluster {name}] adding feature remotedesktop", name=self.name)
        await self.cluster.install_feature(
            "remotedesktop",
            ClusterTarget(self.name, masters),
            {"Username": ADMIN_USER, "Password": self.cluster.identity.admin_password},
        )

    async def get_state(self) -> ClusterState:
        return await self.actors.get_state(self.cluster)
