import asyncio
from dataclasses import dataclass, field

import pytest

from cumulus.api.model import Node, NodeType
from cumulus.cluster.properties import Nodes
from cumulus.core.exceptions import MetadataError
from cumulus.metadata.properties import Properties, PropertyKey

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


@dataclass
class Counter:
    value: int = 0
    history: list[int] = field(default_factory=list)


@dataclass
class Tags:
    names: set[str] = field(default_factory=set)


COUNTER = PropertyKey("counter", 1, Counter)
TAGS = PropertyKey("tags", 2, Tags)


def test_storage_name():
    assert COUNTER.storage_name == "counter.v1"
    assert TAGS.storage_name == "tags.v2"


@pytest.mark.asyncio
async def test_read_returns_default_payload():
    props = Properties([COUNTER])
    async with props.lock_for_read(COUNTER) as counter:
        assert counter == Counter()


@pytest.mark.asyncio
async def test_write_commits_on_normal_exit():
    props = Properties([COUNTER])
    async with props.lock_for_write(COUNTER) as counter:
        counter.value = 7
    assert await props.lock_for_read(COUNTER).then_use(lambda c: c.value) == 7


@pytest.mark.asyncio
async def test_write_discarded_when_body_raises():
    props = Properties([COUNTER])
    with pytest.raises(RuntimeError):
        async with props.lock_for_write(COUNTER) as counter:
            counter.value = 99
            counter.history.append(99)
            raise RuntimeError("abort")

    counter = await props.lock_for_read(COUNTER).then_use(lambda c: c)
    assert counter == Counter()


@pytest.mark.asyncio
async def test_write_discarded_when_persist_fails():
    async def persist(key, value):
        raise OSError("disk full")

    props = Properties([COUNTER], persist=persist)
    with pytest.raises(MetadataError, match="disk full"):
        async with props.lock_for_write(COUNTER) as counter:
            counter.value = 1

    assert props.snapshot()["counter.v1"].value == 0


@pytest.mark.asyncio
async def test_persist_receives_written_value():
    persisted: list[tuple[str, int]] = []

    async def persist(key, value):
        persisted.append((key.storage_name, value.value))

    props = Properties([COUNTER], persist=persist)
    async with props.lock_for_write(COUNTER) as counter:
        counter.value = 3
    assert persisted == [("counter.v1", 3)]


@pytest.mark.asyncio
async def test_reader_gets_a_copy():
    props = Properties([TAGS])
    async with props.lock_for_read(TAGS) as tags:
        tags.names.add("leaked")
    assert await props.lock_for_read(TAGS).then_use(lambda t: t.names) == set()


@pytest.mark.asyncio
async def test_then_use_accepts_coroutine_functions():
    props = Properties([COUNTER])

    async def bump(counter: Counter) -> int:
        await asyncio.sleep(0)
        counter.value += 1
        return counter.value

    assert await props.lock_for_write(COUNTER).then_use(bump) == 1
    assert await props.lock_for_write(COUNTER).then_use(bump) == 2


@pytest.mark.asyncio
async def test_unknown_key_is_rejected():
    props = Properties([COUNTER])
    with pytest.raises(MetadataError, match="tags.v2"):
        async with props.lock_for_read(TAGS):
            pass


@pytest.mark.asyncio
async def test_concurrent_writers_never_lose_updates():
    props = Properties([COUNTER])

    async def increment() -> None:
        async with props.lock_for_write(COUNTER) as counter:
            current = counter.value
            await asyncio.sleep(0)
            counter.value = current + 1
            counter.history.append(counter.value)

    await asyncio.gather(*(increment() for _ in range(50)))
    counter = props.snapshot()["counter.v1"]
    assert counter.value == 50
    assert counter.history == list(range(1, 51))


@pytest.mark.asyncio
async def test_readers_only_see_committed_values():
    props = Properties([COUNTER])
    observed: list[int] = []

    async def writer() -> None:
        for _ in range(10):
            async with props.lock_for_write(COUNTER) as counter:
                counter.value += 1
                await asyncio.sleep(0)
                counter.value += 1

    async def reader() -> None:
        for _ in range(20):
            observed.append(await props.lock_for_read(COUNTER).then_use(lambda c: c.value))
            await asyncio.sleep(0)

    await asyncio.gather(writer(), reader())
    assert all(v % 2 == 0 for v in observed)


@pytest.mark.asyncio
async def test_groups_lock_independently():
    props = Properties([COUNTER, TAGS])
    entered = asyncio.Event()

    async def hold_counter() -> None:
        async with props.lock_for_write(COUNTER):
            entered.set()
            await asyncio.sleep(0.1)

    holder = asyncio.create_task(hold_counter())
    await entered.wait()
    async with asyncio.timeout(0.05):
        async with props.lock_for_write(TAGS) as tags:
            tags.names.add("x")
    await holder


def test_load_replaces_committed_values():
    props = Properties([COUNTER])
    props.load({"counter.v1": Counter(value=5), "ignored.v1": 1})
    assert props.snapshot() == {"counter.v1": Counter(value=5)}


def test_nodes_bookkeeping():
    nodes = Nodes()
    assert nodes.next_index(NodeType.MASTER) == 1
    assert nodes.next_index(NodeType.PRIVATE_NODE) == 1
    assert nodes.next_index(NodeType.PRIVATE_NODE) == 2
    nodes.members(NodeType.MASTER).append(Node("h1", "demo-master-1", "10.0.0.2"))
    nodes.members(NodeType.PRIVATE_NODE).append(Node("h2", "demo-node-2", "10.0.0.3"))

    assert nodes.type_of("h2") is NodeType.PRIVATE_NODE
    assert nodes.remove("h2").name == "demo-node-2"
    assert nodes.type_of("h2") is None
    assert nodes.remove("h2") is None
    assert nodes.next_index(NodeType.PRIVATE_NODE) == 3
    with pytest.raises(ValueError, match="Invalid node type"):
        nodes.members(NodeType.GATEWAY)
