"""Handle on one cluster: its metadata, members and lifecycle operations."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from loguru import logger

from cumulus.api.model import ClusterIdentity, ClusterState, HostDefinition, Node, NodeType
from cumulus.cluster.actors import BlueprintActors
from cumulus.cluster.blueprint import Blueprint
from cumulus.cluster.flavors import actors_for
from cumulus.cluster.metadata import ClusterMetadata
from cumulus.cluster.properties import ClusterProperty, NetworkConfig
from cumulus.cluster.request import ClusterRequest
from cumulus.cluster.sizing import complement_host_definition
from cumulus.context import CancelToken
from cumulus.core.exceptions import ConfigurationError, FeatureError, MetadataError, NotFoundError
from cumulus.install.feature import Results, Settings, Target, Variables
from cumulus.internal.decorators import audit
from cumulus.metadata.properties import Properties
from cumulus.utils.conc import gather_all, raise_for_errors

if TYPE_CHECKING:
    from cumulus.session import Session

log = logger.bind(component="controller")


class Controller:
    def __init__(
        self,
        session: Session,
        metadata: ClusterMetadata,
        actors: BlueprintActors | None = None,
    ) -> None:
        self.session = session
        self.metadata = metadata
        self.actors = actors or actors_for(metadata.identity.flavor)

    # -- construction / loading -------------------------------------------

    @classmethod
    async def create(
        cls,
        session: Session,
        request: ClusterRequest,
        token: CancelToken | None = None,
        actors: BlueprintActors | None = None,
    ) -> Controller:
        """Construct a new cluster and return its controller."""
        name = request.cluster_name
        metadata = ClusterMetadata(session.bucket, name)
        if await metadata.exists():
            raise ConfigurationError(f"cluster '{name}' already exists")

        metadata.record = ClusterIdentity(
            name=name, flavor=request.flavor, complexity=request.complexity,
        )
        controller = cls(session, metadata, actors)
        await controller.blueprint().construct(request, token)
        return controller

    @classmethod
    async def load(
        cls,
        session: Session,
        name: str,
        actors: BlueprintActors | None = None,
    ) -> Controller:
        metadata = ClusterMetadata(session.bucket, name.lower())
        if not await metadata.read():
            raise MetadataError(f"cluster '{name}' not found")
        return cls(session, metadata, actors)

    def blueprint(self) -> Blueprint:
        return Blueprint(self, self.actors)

    # -- accessors --------------------------------------------------------

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def identity(self) -> ClusterIdentity:
        return self.metadata.identity

    @property
    def properties(self) -> Properties:
        return self.metadata.properties

    async def _nodes(self, node_type: NodeType) -> list[Node]:
        return await self.properties.lock_for_read(ClusterProperty.NODES_V1).then_use(
            lambda nodes: list(nodes.members(node_type))
        )

    async def list_masters(self) -> list[Node]:
        return await self._nodes(NodeType.MASTER)

    async def list_master_ids(self) -> list[str]:
        return [n.id for n in await self._nodes(NodeType.MASTER)]

    async def list_master_ips(self) -> list[str]:
        return [n.private_ip for n in await self._nodes(NodeType.MASTER)]

    async def list_nodes(self, public: bool = False) -> list[Node]:
        return await self._nodes(NodeType.PUBLIC_NODE if public else NodeType.PRIVATE_NODE)

    async def list_node_ids(self, public: bool = False) -> list[str]:
        return [n.id for n in await self.list_nodes(public)]

    async def list_node_ips(self, public: bool = False) -> list[str]:
        return [n.private_ip for n in await self.list_nodes(public)]

    async def network_config(self) -> NetworkConfig:
        return await self.properties.lock_for_read(ClusterProperty.NETWORK_V1).then_use(lambda n: n)

    async def state(self) -> ClusterState:
        return await self.actors.get_state(self)

    async def installed_features(self) -> dict[str, list[str]]:
        return await self.properties.lock_for_read(ClusterProperty.FEATURES_V1).then_use(
            lambda f: f.installed
        )

    # -- features ---------------------------------------------------------

    async def install_feature(
        self,
        name: str,
        target: Target,
        variables: Variables | None = None,
        settings: Settings | None = None,
    ) -> Results:
        """Add a feature to target and record it in the Features group.

        Raises:
            FeatureError: If the feature is unknown or failed on any host.
        """
        feature = self.session.installer.new_feature(name)
        results = await feature.add(target, variables or {}, settings or Settings())
        if not results.successful():
            raise FeatureError(name, target.label, results.all_error_messages())

        async with self.properties.lock_for_write(ClusterProperty.FEATURES_V1) as features:
            targets = features.installed.setdefault(name, [])
            if target.name not in targets:
                targets.append(target.name)
        return results

    # -- expansion / shrinking --------------------------------------------

    @audit("Controller.add_nodes", args=True)
    async def add_nodes(
        self,
        count: int,
        public: bool = False,
        definition: HostDefinition | None = None,
    ) -> list[Node]:
        """Create and configure count more nodes.

        Sizing is the cluster's node default merged with definition. If any
        of the new nodes fails, all of them are deleted again.
        """
        defaults = await self.properties.lock_for_read(ClusterProperty.DEFAULTS_V1).then_use(lambda d: d)
        node_def = complement_host_definition(definition, defaults.node_sizing)
        if not node_def.image_id:
            node_def = replace(node_def, image_id=defaults.image)

        blueprint = self.blueprint()
        created: list[Node] = []
        try:
            await blueprint.create_nodes(count, public, node_def, created)
            await blueprint.configure_nodes(public, [n.id for n in created])
        except Exception:
            log.warning("[cluster {name}] node expansion failed, removing new nodes", name=self.name)
            await self._discard([n.id for n in created])
            raise

        return created

    async def _discard(self, ids: list[str]) -> None:
        for node_id in ids:
            try:
                await self.session.hosts.delete(node_id)
            except Exception as e:
                log.error("Failed to delete node {id}: {err}", id=node_id, err=e)
                continue
            async with self.properties.lock_for_write(ClusterProperty.NODES_V1) as nodes:
                nodes.remove(node_id)

    @audit("Controller.delete_node", args=True)
    async def delete_node(self, node_id: str) -> None:
        """Unconfigure and delete one master or node."""
        node_type = await self.properties.lock_for_read(ClusterProperty.NODES_V1).then_use(
            lambda nodes: nodes.type_of(node_id)
        )
        if node_type is None:
            raise NotFoundError("node", node_id)

        if node_type is NodeType.MASTER:
            await self.actors.unconfigure_master(self, node_id)
        else:
            masters = await self.list_master_ids()
            await self.actors.unconfigure_node(self, node_id, masters[0] if masters else None)

        await self.session.hosts.delete(node_id)
        async with self.properties.lock_for_write(ClusterProperty.NODES_V1) as nodes:
            nodes.remove(node_id)

    # -- deletion ---------------------------------------------------------

    @audit("Controller.delete")
    async def delete(self) -> None:
        """Delete the whole cluster.

        Order: cluster unconfiguration, public and private nodes, masters,
        network (with its gateway), admin keypair, metadata. Metadata is kept
        when a step fails, so deletion can be retried.
        """
        log.info("Deleting cluster {name}", name=self.name)
        await self.actors.unconfigure_cluster(self)

        for public in (True, False):
            ids = await self.list_node_ids(public)
            raise_for_errors(await gather_all(self.delete_node(i) for i in ids))
        ids = await self.list_master_ids()
        raise_for_errors(await gather_all(self.delete_node(i) for i in ids))

        network = await self.network_config()
        if network.network_id:
            try:
                await self.session.networks.delete(network.network_id)
            except NotFoundError:
                log.debug("Network {id} already gone", id=network.network_id)

        keypair = self.identity.keypair
        if keypair is not None:
            try:
                await self.session.provider.delete_keypair(keypair.id)
            except NotFoundError:
                log.debug("Admin keypair {name} already gone", name=keypair.name)

        await self.metadata.delete()
        log.info("Cluster {name} deleted", name=self.name)
