"""Wiring of a tenant to its provider, metadata store and installer."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from cumulus.cluster.blueprint import BlueprintSettings
from cumulus.infra.throttle import Limiter
from cumulus.install.feature import FeatureInstaller
from cumulus.install.local import LocalInstaller
from cumulus.metadata.bucket import DiskBucket, MemoryBucket, MetadataBucket
from cumulus.providers.provider import InfrastructureProvider
from cumulus.providers.services import HostService, NetworkService
from cumulus.tenant import Tenant


@dataclass(slots=True)
class Session:
    tenant: Tenant
    provider: InfrastructureProvider
    bucket: MetadataBucket
    installer: FeatureInstaller
    hosts: HostService
    networks: NetworkService
    settings: BlueprintSettings

    @classmethod
    async def open(
        cls,
        tenant: Tenant,
        installer: FeatureInstaller | None = None,
        settings: BlueprintSettings | None = None,
        bucket: MetadataBucket | None = None,
    ) -> Session:
        settings = settings or BlueprintSettings()
        provider = await tenant.provider.create_provider()
        if bucket is None:
            bucket = (
                DiskBucket(Path(tenant.metadata_path).expanduser())
                if tenant.metadata_path
                else MemoryBucket()
            )
        limiter = Limiter(max_concurrent=settings.max_concurrent_provider_calls)
        hosts = HostService(provider, bucket, limiter)
        logger.debug(
            "Session opened for tenant {tenant} ({type})",
            tenant=tenant.name,
            type=tenant.provider.type,
        )
        return cls(
            tenant=tenant,
            provider=provider,
            bucket=bucket,
            installer=installer or LocalInstaller(),
            hosts=hosts,
            networks=NetworkService(provider, hosts),
            settings=settings,
        )
