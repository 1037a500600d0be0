"""In-process infrastructure provider.

Keeps networks, hosts and keypairs in memory and allocates addresses from
the requested CIDR. Useful for local development, examples and tests
without any cloud account.
"""

from __future__ import annotations

import asyncio
import ipaddress
import secrets
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, replace

from loguru import logger

from cumulus.api.model import (
    Host,
    HostRequest,
    Image,
    KeyPair,
    Network,
    NetworkRequest,
    SizingRequirements,
    Template,
)
from cumulus.api.provider import ProviderConfig
from cumulus.core.exceptions import NotFoundError, ProviderError

log = logger.bind(provider="memory")

DEFAULT_TEMPLATES: tuple[Template, ...] = (
    Template(id="t-small", name="s1.small", cores=2, ram_size=7.0, disk_size=60),
    Template(id="t-medium", name="s1.medium", cores=4, ram_size=15.0, disk_size=100),
    Template(id="t-large", name="s1.large", cores=8, ram_size=30.0, disk_size=200),
    Template(id="t-xlarge", name="s1.xlarge", cores=16, ram_size=60.0, disk_size=400),
    Template(id="t-gpu", name="g1.large", cores=8, ram_size=30.0, disk_size=200, gpu_count=1),
)

DEFAULT_IMAGES: tuple[Image, ...] = (
    Image(id="img-ubuntu-1804", name="Ubuntu 18.04"),
    Image(id="img-ubuntu-2204", name="Ubuntu 22.04"),
    Image(id="img-centos-7", name="CentOS 7.3"),
)

PUBLIC_CIDR = "203.0.113.0/24"


@dataclass(frozen=True, slots=True)
class Memory(ProviderConfig):
    """In-memory provider configuration.

    Args:
        latency: Seconds every provider call takes.
        boot_time: Seconds before a new host reports "running".
        templates: Host templates offered.
        images: Images offered.
    """

    latency: float = 0.0
    boot_time: float = 0.0
    templates: tuple[Template, ...] = DEFAULT_TEMPLATES
    images: tuple[Image, ...] = DEFAULT_IMAGES

    async def create_provider(self) -> MemoryProvider:
        return MemoryProvider(self)

    @property
    def type(self) -> str: return "memory"


@dataclass(slots=True)
class _NetworkState:
    network: Network
    addresses: list[str]
    next_address: int = 0


@dataclass(slots=True)
class _HostState:
    host: Host
    booted_at: float
    public_ip: str | None = None
    is_gateway: bool = False
    keypair: str | None = None


class MemoryProvider:
    def __init__(self, config: Memory | None = None) -> None:
        self._config = config or Memory()
        self._networks: dict[str, _NetworkState] = {}
        self._hosts: dict[str, _HostState] = {}
        self._keypairs: dict[str, KeyPair] = {}
        self._public_pool = [str(ip) for ip in ipaddress.ip_network(PUBLIC_CIDR).hosts()]
        self._lock = asyncio.Lock()

    async def _delay(self) -> None:
        if self._config.latency:
            await asyncio.sleep(self._config.latency)

    # -- networks ---------------------------------------------------------

    async def create_network(self, request: NetworkRequest) -> Network:
        await self._delay()
        try:
            cidr = ipaddress.ip_network(request.cidr, strict=False)
        except ValueError as e:
            raise ProviderError(f"invalid CIDR '{request.cidr}': {e}") from e
        if cidr.version != request.ip_version:
            raise ProviderError(f"CIDR '{request.cidr}' is not an IPv{int(request.ip_version)} range")

        async with self._lock:
            if any(s.network.name == request.name for s in self._networks.values()):
                raise ProviderError(f"network '{request.name}' already exists")
            addresses = [str(ip) for ip in cidr.hosts()]
            if len(addresses) < 4:
                raise ProviderError(f"CIDR '{request.cidr}' is too narrow, use a wider range")
            network = Network(
                id=f"net-{uuid.uuid4().hex[:12]}",
                name=request.name,
                cidr=str(cidr),
                ip_version=request.ip_version,
            )
            self._networks[network.id] = _NetworkState(network=network, addresses=addresses)

        log.debug("Network {name} created ({id})", name=network.name, id=network.id)
        return network

    def _network_state(self, ref: str) -> _NetworkState:
        state = self._networks.get(ref)
        if state is None:
            state = next((s for s in self._networks.values() if s.network.name == ref), None)
        if state is None:
            raise NotFoundError("network", ref)
        return state

    async def get_network(self, ref: str) -> Network:
        await self._delay()
        return self._network_state(ref).network

    async def list_networks(self) -> Sequence[Network]:
        await self._delay()
        return [s.network for s in self._networks.values()]

    async def delete_network(self, network_id: str) -> None:
        await self._delay()
        async with self._lock:
            state = self._network_state(network_id)
            attached = [
                h.host.name for h in self._hosts.values()
                if h.host.network_id == state.network.id
            ]
            if attached:
                raise ProviderError(
                    f"network '{state.network.name}' still has hosts attached: {', '.join(attached)}"
                )
            del self._networks[state.network.id]
        log.debug("Network {name} deleted", name=state.network.name)

    # -- hosts ------------------------------------------------------------

    def _template(self, template_id: str) -> Template:
        for t in self._config.templates:
            if t.id == template_id:
                return t
        raise NotFoundError("template", template_id)

    def _image(self, image_id: str) -> Image:
        for i in self._config.images:
            if image_id in (i.id, i.name):
                return i
        raise NotFoundError("image", image_id)

    async def create_host(self, request: HostRequest) -> Host:
        await self._delay()
        self._template(request.template_id)
        self._image(request.image_id)

        async with self._lock:
            net = self._network_state(request.network_id)
            if any(h.host.name == request.name for h in self._hosts.values()):
                raise ProviderError(f"host '{request.name}' already exists")
            if request.is_gateway and net.network.gateway_id:
                raise ProviderError(f"network '{net.network.name}' already has a gateway")
            if net.next_address >= len(net.addresses):
                raise ProviderError(f"no address left in network '{net.network.name}'")
            private_ip = net.addresses[net.next_address]
            net.next_address += 1

            public_ip = None
            if request.public or request.is_gateway:
                if not self._public_pool:
                    raise ProviderError("no public IP left")
                public_ip = self._public_pool.pop(0)

            host = Host(
                id=f"host-{uuid.uuid4().hex[:12]}",
                name=request.name,
                network_id=net.network.id,
                private_ip=private_ip,
                public_ip=public_ip,
                status="starting",
                template_id=request.template_id,
                image_id=request.image_id,
            )
            self._hosts[host.id] = _HostState(
                host=host,
                booted_at=time.monotonic() + self._config.boot_time,
                public_ip=public_ip,
                is_gateway=request.is_gateway,
                keypair=request.keypair.name if request.keypair else None,
            )
            if request.is_gateway:
                net.network = replace(net.network, gateway_id=host.id)

        log.debug("Host {name} created ({id}, {ip})", name=host.name, id=host.id, ip=host.private_ip)
        return host

    def _host_state(self, ref: str) -> _HostState:
        state = self._hosts.get(ref)
        if state is None:
            state = next((s for s in self._hosts.values() if s.host.name == ref), None)
        if state is None:
            raise NotFoundError("host", ref)
        return state

    def _current(self, state: _HostState) -> Host:
        if state.host.status == "starting" and time.monotonic() >= state.booted_at:
            state.host = replace(state.host, status="running")
        return state.host

    async def get_host(self, ref: str) -> Host:
        await self._delay()
        return self._current(self._host_state(ref))

    async def list_hosts(self) -> Sequence[Host]:
        await self._delay()
        return [self._current(s) for s in self._hosts.values()]

    async def delete_host(self, host_id: str) -> None:
        await self._delay()
        async with self._lock:
            state = self._host_state(host_id)
            del self._hosts[state.host.id]
            if state.public_ip:
                self._public_pool.append(state.public_ip)
            net = self._networks.get(state.host.network_id)
            if net is not None and net.network.gateway_id == state.host.id:
                net.network = replace(net.network, gateway_id="")
        log.debug("Host {name} deleted", name=state.host.name)

    # -- keypairs ---------------------------------------------------------

    async def create_keypair(self, name: str) -> KeyPair:
        await self._delay()
        async with self._lock:
            if any(kp.name == name for kp in self._keypairs.values()):
                raise ProviderError(f"keypair '{name}' already exists")
            kp = KeyPair(
                id=f"kp-{uuid.uuid4().hex[:12]}",
                name=name,
                public_key=f"ssh-ed25519 {secrets.token_urlsafe(32)} {name}",
                private_key=secrets.token_urlsafe(48),
            )
            self._keypairs[kp.id] = kp
        return kp

    async def delete_keypair(self, ref: str) -> None:
        await self._delay()
        async with self._lock:
            kp = self._keypairs.get(ref) or next(
                (k for k in self._keypairs.values() if k.name == ref), None,
            )
            if kp is None:
                raise NotFoundError("keypair", ref)
            del self._keypairs[kp.id]

    async def list_keypairs(self) -> Sequence[KeyPair]:
        await self._delay()
        return list(self._keypairs.values())

    # -- catalog ----------------------------------------------------------

    async def select_templates_by_size(
        self, requirements: SizingRequirements,
    ) -> Sequence[Template]:
        await self._delay()
        matching = [
            t for t in self._config.templates
            if t.cores >= requirements.min_cores
            and t.ram_size >= requirements.min_ram_size
            and t.disk_size >= requirements.min_disk_size
            and t.gpu_count >= requirements.min_gpu
        ]
        return sorted(matching, key=lambda t: (t.cores, t.ram_size, t.disk_size, t.gpu_count))

    async def search_image(self, name: str) -> Image:
        await self._delay()
        return self._image(name)
