import asyncio

import pytest
import pytest_asyncio

from cumulus import (
    AggregateError,
    BlueprintSettings,
    ClusterRequest,
    ClusterState,
    ConfigurationError,
    Controller,
    FeatureError,
    HostDefinition,
    HostTarget,
    LocalInstaller,
    MetadataError,
    NotFoundError,
    Session,
)
from cumulus.cluster.properties import ClusterProperty
from tests.conftest import StubActors

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


@pytest.fixture
def actors() -> StubActors:
    return StubActors(masters=2, private_nodes=1, public_nodes=1)


@pytest_asyncio.fixture
async def cluster(session, actors) -> Controller:
    return await Controller.create(session, ClusterRequest("demo", "10.20.0.0/24"), actors=actors)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_create_twice(self, session, cluster, actors):
        with pytest.raises(ConfigurationError, match="cluster 'demo' already exists"):
            await Controller.create(session, ClusterRequest("demo", "10.30.0.0/24"), actors=actors)

    @pytest.mark.asyncio
    async def test_load(self, session, cluster):
        loaded = await Controller.load(session, "DEMO")

        assert loaded.name == "demo"
        assert loaded.identity.admin_password == cluster.identity.admin_password
        assert await loaded.list_master_ids() == await cluster.list_master_ids()
        assert [n.name for n in await loaded.list_nodes(public=True)] == ["demo-pubnode-1"]

    @pytest.mark.asyncio
    async def test_load_missing(self, session):
        with pytest.raises(MetadataError, match="cluster 'ghost' not found"):
            await Controller.load(session, "ghost")

    @pytest.mark.asyncio
    async def test_accessors(self, cluster, provider):
        masters = await cluster.list_masters()
        assert sorted(m.name for m in masters) == ["demo-master-1", "demo-master-2"]
        assert sorted(await cluster.list_master_ips()) == sorted(m.private_ip for m in masters)

        node_ids = await cluster.list_node_ids()
        assert len(node_ids) == 1
        node = await provider.get_host(node_ids[0])
        assert await cluster.list_node_ips() == [node.private_ip]

        public_ips = await cluster.list_node_ips(public=True)
        assert len(public_ips) == 1
        assert public_ips[0].startswith("10.20.0.")

    @pytest.mark.asyncio
    async def test_delete(self, session, cluster, actors):
        await cluster.delete()

        assert await session.provider.list_hosts() == []
        assert await session.provider.list_networks() == []
        assert await session.provider.list_keypairs() == []
        assert await session.bucket.list("") == []
        with pytest.raises(MetadataError):
            await Controller.load(session, "demo", actors)


class TestExpansion:
    @pytest.mark.asyncio
    async def test_add_nodes(self, cluster, provider):
        nodes = await cluster.add_nodes(2)

        assert sorted(n.name for n in nodes) == ["demo-node-2", "demo-node-3"]
        assert sorted(n.name for n in await cluster.list_nodes()) == [
            "demo-node-1", "demo-node-2", "demo-node-3",
        ]
        for node in nodes:
            host = await provider.get_host(node.id)
            assert host.template_id == "t-medium"

    @pytest.mark.asyncio
    async def test_add_nodes_are_configured(self, cluster, actors):
        actors.events.clear()
        await cluster.add_nodes(1)
        assert actors.events == ["private-1:start", "private-1:end"]

    @pytest.mark.asyncio
    async def test_add_public_nodes_with_sizing(self, cluster, provider):
        nodes = await cluster.add_nodes(1, public=True, definition=HostDefinition(cores=16))

        assert [n.name for n in nodes] == ["demo-pubnode-2"]
        assert nodes[0].public_ip is not None
        host = await provider.get_host(nodes[0].id)
        assert host.template_id == "t-xlarge"

    @pytest.mark.asyncio
    async def test_failed_expansion_removes_new_nodes(self, cluster, installer, provider):
        before = await cluster.list_node_ids()
        installer.fail("docker", host="demo-node-3")

        with pytest.raises(AggregateError, match="docker"):
            await cluster.add_nodes(2)

        assert await cluster.list_node_ids() == before
        names = {h.name for h in await provider.list_hosts()}
        assert "demo-node-2" not in names
        assert "demo-node-3" not in names
        assert "demo-node-1" in names

    @pytest.mark.asyncio
    async def test_concurrent_expansion_keeps_other_nodes(self, tenant, bucket, actors):
        installer = LocalInstaller(delay=0.05)
        session = await Session.open(
            tenant, installer=installer, settings=BlueprintSettings(poll_interval=0.01), bucket=bucket,
        )
        cluster = await Controller.create(session, ClusterRequest("demo", "10.20.0.0/24"), actors=actors)
        installer.fail("docker", host="demo-node-2")

        failing = asyncio.create_task(cluster.add_nodes(1))
        async with asyncio.timeout(5):
            while "demo-node-2" not in [n.name for n in await cluster.list_nodes()]:
                await asyncio.sleep(0.005)
        nodes = await cluster.add_nodes(1)

        with pytest.raises(AggregateError, match="docker"):
            await failing
        assert [n.name for n in nodes] == ["demo-node-3"]
        assert sorted(n.name for n in await cluster.list_nodes()) == ["demo-node-1", "demo-node-3"]
        names = {h.name for h in await session.provider.list_hosts()}
        assert "demo-node-3" in names
        assert "demo-node-2" not in names

    @pytest.mark.asyncio
    async def test_delete_node(self, cluster, provider):
        node_id = (await cluster.list_node_ids())[0]
        await cluster.delete_node(node_id)

        assert await cluster.list_node_ids() == []
        with pytest.raises(NotFoundError):
            await provider.get_host(node_id)

    @pytest.mark.asyncio
    async def test_delete_master(self, cluster):
        master_id = (await cluster.list_master_ids())[0]
        await cluster.delete_node(master_id)
        assert len(await cluster.list_master_ids()) == 1

    @pytest.mark.asyncio
    async def test_delete_unknown_node(self, cluster):
        with pytest.raises(NotFoundError, match="node 'nope' not found"):
            await cluster.delete_node("nope")

    @pytest.mark.asyncio
    async def test_indexes_are_not_reused(self, cluster):
        node_id = (await cluster.list_node_ids())[0]
        await cluster.delete_node(node_id)
        nodes = await cluster.add_nodes(1)
        assert nodes[0].name == "demo-node-2"


class TestFeatures:
    @pytest.mark.asyncio
    async def test_install_feature_is_recorded(self, cluster, provider):
        master = await provider.get_host("demo-master-1")
        await cluster.install_feature("spark", HostTarget.of(master), {"Version": "3"})

        installed = await cluster.installed_features()
        assert installed["spark"] == ["demo-master-1"]

    @pytest.mark.asyncio
    async def test_install_feature_failure(self, cluster, installer, provider):
        installer.fail("spark", message="no space left")
        master = await provider.get_host("demo-master-1")

        with pytest.raises(FeatureError, match="no space left"):
            await cluster.install_feature("spark", HostTarget.of(master))
        assert "spark" not in await cluster.installed_features()

    @pytest.mark.asyncio
    async def test_state(self, cluster):
        assert await cluster.state() is ClusterState.CREATED
        async with cluster.properties.lock_for_write(ClusterProperty.STATE_V1) as state:
            state.state = ClusterState.STOPPED
        assert await cluster.state() is ClusterState.STOPPED
