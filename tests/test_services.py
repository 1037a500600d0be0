import asyncio
from dataclasses import replace

import pytest

from cumulus.api.model import HostDefinition, NetworkRequest
from cumulus.core.exceptions import MetadataError, NoTemplateError, NotFoundError, ProviderError
from cumulus.metadata.bucket import MemoryBucket
from cumulus.providers.memory import Memory, MemoryProvider
from cumulus.providers.properties import HostMetadata, HostProperty
from cumulus.providers.services import HostService, NetworkService, NetworkSpec

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

GATEWAY = HostDefinition(cores=2, ram_size=7.0, disk_size=60, image_id="Ubuntu 18.04")


class NoHostProvider(MemoryProvider):
    async def create_host(self, request):
        raise ProviderError("quota exceeded")


class UnreachableProvider(MemoryProvider):
    async def get_host(self, ref):
        raise ConnectionError("endpoint unreachable")


class ReadOnlyBucket(MemoryBucket):
    async def write(self, path, data):
        raise OSError("read-only")


class SlowHostBucket(MemoryBucket):
    async def write(self, path, data):
        if path.startswith("hosts/"):
            await asyncio.sleep(0.5)
        await super().write(path, data)


@pytest.fixture
def memory() -> MemoryProvider:
    return MemoryProvider(Memory())


@pytest.fixture
def store() -> MemoryBucket:
    return MemoryBucket()


@pytest.fixture
def hosts(memory, store) -> HostService:
    return HostService(memory, store)


@pytest.fixture
def networks(memory, hosts) -> NetworkService:
    return NetworkService(memory, hosts)


class TestNetworkService:
    @pytest.mark.asyncio
    async def test_create_builds_gateway_and_keypair(self, memory, networks, hosts):
        network = await networks.create(NetworkSpec("net-demo", "192.168.0.0/24", GATEWAY))

        assert network.gateway_id
        gateway = await memory.get_host(network.gateway_id)
        assert gateway.name == "gw-net-demo"
        assert gateway.public_ip is not None
        assert [kp.name for kp in await memory.list_keypairs()] == ["kp_net-demo"]

        meta = await hosts.metadata(gateway.id)
        assert meta.host.id == gateway.id
        net = await meta.properties.lock_for_read(HostProperty.NETWORK_V1).then_use(lambda n: n)
        assert net.is_gateway
        assert net.network_id == network.id

    @pytest.mark.asyncio
    async def test_no_template_rolls_back_network(self, memory, networks):
        huge = replace(GATEWAY, cores=512)
        with pytest.raises(NoTemplateError, match="512 cpu"):
            await networks.create(NetworkSpec("net-demo", "192.168.0.0/24", huge))
        assert await memory.list_networks() == []
        assert await memory.list_keypairs() == []

    @pytest.mark.asyncio
    async def test_unknown_image_rolls_back_network(self, memory, networks):
        with pytest.raises(NotFoundError, match="image"):
            await networks.create(
                NetworkSpec("net-demo", "192.168.0.0/24", replace(GATEWAY, image_id="Plan9"))
            )
        assert await memory.list_networks() == []

    @pytest.mark.asyncio
    async def test_gateway_failure_rolls_back_keypair_and_network(self, store):
        memory = NoHostProvider()
        networks = NetworkService(memory, HostService(memory, store))
        with pytest.raises(ProviderError, match="quota exceeded"):
            await networks.create(NetworkSpec("net-demo", "192.168.0.0/24", GATEWAY))
        assert await memory.list_networks() == []
        assert await memory.list_keypairs() == []

    @pytest.mark.asyncio
    async def test_keypair_of_previous_attempt_is_replaced(self, memory, networks):
        stale = await memory.create_keypair("kp_net-demo")
        await networks.create(NetworkSpec("net-demo", "192.168.0.0/24", GATEWAY))
        keypairs = await memory.list_keypairs()
        assert len(keypairs) == 1
        assert keypairs[0].id != stale.id

    @pytest.mark.asyncio
    async def test_delete_removes_gateway_keypair_and_network(self, memory, store, networks):
        network = await networks.create(NetworkSpec("net-demo", "192.168.0.0/24", GATEWAY))
        await networks.delete(network.id)
        assert await memory.list_networks() == []
        assert await memory.list_hosts() == []
        assert await memory.list_keypairs() == []
        assert await store.list("hosts/") == []


class TestHostService:
    @pytest.mark.asyncio
    async def test_create_writes_metadata(self, memory, hosts, store):
        network = await memory.create_network(NetworkRequest("n", "10.0.0.0/24"))
        definition = HostDefinition(cores=4, ram_size=15.0, disk_size=100, image_id="Ubuntu 18.04")
        host = await hosts.create("h1", network.id, definition)

        meta = HostMetadata(store, host.id)
        assert await meta.read()
        sizing = await meta.properties.lock_for_read(HostProperty.SIZING_V1).then_use(lambda s: s)
        assert sizing.requested == definition
        assert sizing.template_id == "t-medium"

    @pytest.mark.asyncio
    async def test_metadata_write_failure_deletes_host(self, memory):
        hosts = HostService(memory, ReadOnlyBucket())
        network = await memory.create_network(NetworkRequest("n", "10.0.0.0/24"))
        with pytest.raises(MetadataError, match="read-only"):
            await hosts.create("h1", network.id, GATEWAY)
        assert await memory.list_hosts() == []

    @pytest.mark.asyncio
    async def test_delete_tolerates_missing_host(self, hosts):
        await hosts.delete("ghost")

    @pytest.mark.asyncio
    async def test_missing_metadata(self, hosts):
        with pytest.raises(MetadataError, match="ghost"):
            await hosts.metadata("ghost")

    @pytest.mark.asyncio
    async def test_adapter_errors_become_provider_errors(self, store):
        hosts = HostService(UnreachableProvider(), store)
        with pytest.raises(ProviderError, match="unreachable"):
            await hosts.inspect("h1")

    @pytest.mark.asyncio
    async def test_wait_ready_times_out(self, store):
        memory = MemoryProvider(Memory(boot_time=60))
        hosts = HostService(memory, store)
        network = await memory.create_network(NetworkRequest("n", "10.0.0.0/24"))
        host = await hosts.create("h1", network.id, GATEWAY)
        with pytest.raises(ProviderError, match="timeout waiting"):
            await hosts.wait_ready(host.id, timeout=0.05, interval=0.01)

    @pytest.mark.asyncio
    async def test_cancelled_metadata_write_deletes_host(self, memory):
        store = SlowHostBucket()
        hosts = HostService(memory, store)
        network = await memory.create_network(NetworkRequest("n", "10.0.0.0/24"))

        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.05):
                await hosts.create("h1", network.id, GATEWAY)

        assert await memory.list_hosts() == []
        assert await store.list("hosts/") == []
