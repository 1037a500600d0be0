"""Top-level cluster operations.

Each function accepts a Tenant, for which a fresh Session is opened, or an
already opened Session, which keeps provider state between calls:

    import cumulus as cc

    tenant = cc.Tenant("dev", provider=cc.Memory())
    session = await cc.Session.open(tenant)

    request = cc.ClusterRequest("demo", "192.168.10.0/24", flavor=cc.Flavor.SWARM)
    cluster = await cc.create_cluster(request, session, logging=True)
    print(await cluster.state())

    await cc.delete_cluster("demo", session)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from cumulus.cluster.blueprint import BlueprintSettings
from cumulus.cluster.controller import Controller
from cumulus.cluster.request import ClusterRequest
from cumulus.context import CancelToken
from cumulus.install.feature import FeatureInstaller
from cumulus.logging import LogConfig, _setup_logging, _teardown_logging
from cumulus.session import Session
from cumulus.tenant import Tenant


@contextmanager
def _logging_scope(logging: LogConfig | bool) -> Iterator[None]:
    match logging:
        case True:
            config: LogConfig | None = LogConfig()
        case LogConfig():
            config = logging
        case _:
            config = None

    handler_ids = _setup_logging(config) if config else []
    try:
        yield
    finally:
        if config:
            _teardown_logging(handler_ids)


async def _session(
    tenant: Tenant | Session,
    installer: FeatureInstaller | None,
    settings: BlueprintSettings | None,
) -> Session:
    if isinstance(tenant, Session):
        return tenant
    return await Session.open(tenant, installer=installer, settings=settings)


async def create_cluster(
    request: ClusterRequest,
    tenant: Tenant | Session,
    *,
    installer: FeatureInstaller | None = None,
    settings: BlueprintSettings | None = None,
    token: CancelToken | None = None,
    logging: LogConfig | bool = False,
) -> Controller:
    """Construct a cluster and return its controller.

    Raises:
        CumulusError: Construction failed; unless request.keep_on_failure
            is set, nothing created for the cluster survives.
    """
    with _logging_scope(logging):
        session = await _session(tenant, installer, settings)
        return await Controller.create(session, request, token)


async def load_cluster(
    name: str,
    tenant: Tenant | Session,
    *,
    installer: FeatureInstaller | None = None,
    settings: BlueprintSettings | None = None,
    logging: LogConfig | bool = False,
) -> Controller:
    """Load an existing cluster; MetadataError if there is none."""
    with _logging_scope(logging):
        session = await _session(tenant, installer, settings)
        return await Controller.load(session, name)


async def delete_cluster(
    name: str,
    tenant: Tenant | Session,
    *,
    installer: FeatureInstaller | None = None,
    settings: BlueprintSettings | None = None,
    logging: LogConfig | bool = False,
) -> None:
    with _logging_scope(logging):
        session = await _session(tenant, installer, settings)
        controller = await Controller.load(session, name)
        await controller.delete()
