"""Provider services: provider calls plus host metadata bookkeeping.

HostService and NetworkService sit between the orchestrator and the raw
InfrastructureProvider. They resolve templates and images, keep the
``hosts/<id>`` metadata of every host they create in sync, and convert
adapter-specific exceptions into ProviderError.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from dataclasses import dataclass

from loguru import logger

from cumulus.api.model import (
    Host,
    HostDefinition,
    HostRequest,
    IPVersion,
    KeyPair,
    Network,
    NetworkRequest,
    SizingRequirements,
    Template,
)
from cumulus.core.exceptions import MetadataError, NoTemplateError, NotFoundError, ProviderError
from cumulus.infra.throttle import Limiter
from cumulus.internal.decorators import audit
from cumulus.internal.rethrow import rethrow
from cumulus.metadata.bucket import MetadataBucket
from cumulus.providers.properties import HostMetadata, HostProperty
from cumulus.providers.provider import InfrastructureProvider
from cumulus.providers.wait import wait_for_ready

log = logger.bind(component="services")

_provider_error = rethrow(Exception, lambda e: ProviderError(str(e)))


def _requirements(definition: HostDefinition) -> SizingRequirements:
    return SizingRequirements(
        min_cores=definition.cores,
        min_ram_size=definition.ram_size,
        min_disk_size=definition.disk_size,
        min_gpu=definition.gpu_count,
        min_freq=definition.cpu_freq,
    )


class HostService:
    def __init__(
        self,
        provider: InfrastructureProvider,
        bucket: MetadataBucket,
        limiter: Limiter | None = None,
    ) -> None:
        self._provider = provider
        self._bucket = bucket
        self._limiter = limiter or Limiter()

    async def select_template(self, definition: HostDefinition) -> Template:
        templates = await self._provider.select_templates_by_size(_requirements(definition))
        if not templates:
            raise NoTemplateError(
                f"No template found for {definition.cores} cpu, "
                f"{definition.ram_size} ram, {definition.disk_size} disk"
            )
        return templates[0]

    @audit("HostService.create", args=True)
    @_provider_error
    async def create(
        self,
        name: str,
        network_id: str,
        definition: HostDefinition,
        *,
        public: bool = False,
        keypair: KeyPair | None = None,
        is_gateway: bool = False,
    ) -> Host:
        """Create a host and record its metadata.

        If the metadata cannot be written, or the call is cancelled once the
        host exists, the host and its partial metadata are deleted again, so
        a host returned by this method always has metadata.
        """
        template = await self.select_template(definition)
        image = await self._provider.search_image(definition.image_id)
        request = HostRequest(
            name=name,
            network_id=network_id,
            template_id=template.id,
            image_id=image.id,
            public=public,
            keypair=keypair,
            is_gateway=is_gateway,
        )

        async with self._limiter:
            host = await self._provider.create_host(request)

        meta = HostMetadata(self._bucket, host.id, host)
        try:
            async with meta.properties.lock_for_write(HostProperty.SIZING_V1) as sizing:
                sizing.requested = definition
                sizing.template_id = template.id
            async with meta.properties.lock_for_write(HostProperty.NETWORK_V1) as net:
                net.network_id = host.network_id
                net.is_gateway = is_gateway
                net.private_ip = host.private_ip
                net.public_ip = host.public_ip
            await meta.write()
        except BaseException as e:
            if isinstance(e, MetadataError):
                log.warning("Metadata of host {name} not written, deleting host", name=name)
            else:
                log.warning("Creation of host {name} interrupted, deleting host", name=name)
            await asyncio.shield(self._discard(host.id))
            raise
        return host

    async def _discard(self, host_id: str) -> None:
        try:
            await self._provider.delete_host(host_id)
        except Exception as e:
            log.error("Failed to delete host {id}: {err}", id=host_id, err=e)
        try:
            await HostMetadata(self._bucket, host_id).delete()
        except MetadataError as e:
            log.error("Failed to delete metadata of host {id}: {err}", id=host_id, err=e)

    @_provider_error
    async def inspect(self, ref: str) -> Host:
        return await self._provider.get_host(ref)

    async def metadata(self, host_id: str) -> HostMetadata:
        """Load host metadata; raise MetadataError if there is none."""
        meta = HostMetadata(self._bucket, host_id)
        if not await meta.read():
            raise MetadataError(f"metadata of host '{host_id}' not found")
        return meta

    @audit("HostService.delete", args=True)
    @_provider_error
    async def delete(self, host_id: str) -> None:
        """Delete a host and its metadata. An already gone host is not an error."""
        try:
            await self._provider.delete_host(host_id)
        except NotFoundError:
            log.debug("Host {id} already gone", id=host_id)
        await HostMetadata(self._bucket, host_id).delete()

    async def wait_ready(self, host_id: str, *, timeout: float = 300.0, interval: float = 1.0) -> Host:
        return await wait_for_ready(
            lambda: self.inspect(host_id),
            lambda h: h.status == "running",
            terminal_check=lambda h: h.status == "error",
            timeout=timeout,
            interval=interval,
            description=f"host {host_id}",
        )


@dataclass(frozen=True, slots=True)
class NetworkSpec:
    name: str
    cidr: str
    gateway: HostDefinition
    ip_version: IPVersion = IPVersion.IPV4
    dns_servers: tuple[str, ...] = ()


class NetworkService:
    def __init__(self, provider: InfrastructureProvider, hosts: HostService) -> None:
        self._provider = provider
        self._hosts = hosts

    @staticmethod
    def gateway_keypair_name(network_name: str) -> str:
        return f"kp_{network_name}"

    @staticmethod
    def gateway_name(network_name: str) -> str:
        return f"gw-{network_name}"

    @audit("NetworkService.create", args=True)
    @_provider_error
    async def create(self, spec: NetworkSpec) -> Network:
        """Create a network with its gateway.

        Steps: network, template and image check, gateway keypair
        ``kp_<network name>``, gateway host. Any failure undoes every step
        already done, in reverse order.
        """
        async with AsyncExitStack() as undo:
            network = await self._provider.create_network(
                NetworkRequest(
                    name=spec.name,
                    cidr=spec.cidr,
                    ip_version=spec.ip_version,
                    dns_servers=spec.dns_servers,
                )
            )
            undo.push_async_callback(self._undo, "network", network.name, self._provider.delete_network, network.id)

            await self._hosts.select_template(spec.gateway)
            await self._provider.search_image(spec.gateway.image_id)

            kp_name = self.gateway_keypair_name(spec.name)
            try:
                await self._provider.delete_keypair(kp_name)
            except NotFoundError:
                pass
            keypair = await self._provider.create_keypair(kp_name)
            undo.push_async_callback(self._undo, "keypair", kp_name, self._provider.delete_keypair, keypair.id)

            gateway = await self._hosts.create(
                self.gateway_name(spec.name),
                network.id,
                spec.gateway,
                public=True,
                keypair=keypair,
                is_gateway=True,
            )
            undo.push_async_callback(self._undo, "gateway", gateway.name, self._hosts.delete, gateway.id)

            network = await self._provider.get_network(network.id)
            undo.pop_all()
        log.info("Network {name} created with gateway {gw}", name=network.name, gw=network.gateway_id)
        return network

    @staticmethod
    async def _undo(kind: str, name: str, fn, ref: str) -> None:
        try:
            await fn(ref)
            log.debug("Rolled back {kind} {name}", kind=kind, name=name)
        except Exception as e:
            log.error("Failed to roll back {kind} {name}: {err}", kind=kind, name=name, err=e)

    @_provider_error
    async def inspect(self, ref: str) -> Network:
        return await self._provider.get_network(ref)

    @audit("NetworkService.delete", args=True)
    @_provider_error
    async def delete(self, network_id: str) -> None:
        """Delete the gateway, its keypair, then the network."""
        network = await self._provider.get_network(network_id)
        if network.gateway_id:
            await self._hosts.delete(network.gateway_id)
        try:
            await self._provider.delete_keypair(self.gateway_keypair_name(network.name))
        except NotFoundError:
            log.debug("Gateway keypair of {name} already gone", name=network.name)
        await self._provider.delete_network(network.id)
