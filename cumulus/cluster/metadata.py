from __future__ import annotations

from cumulus.api.model import ClusterIdentity
from cumulus.cluster.properties import ClusterProperty
from cumulus.metadata.bucket import MetadataBucket
from cumulus.metadata.entity import Metadata


class ClusterMetadata(Metadata[ClusterIdentity]):
    """Metadata of one cluster, stored under ``clusters/<name>``."""

    def __init__(
        self,
        bucket: MetadataBucket,
        name: str,
        identity: ClusterIdentity | None = None,
    ) -> None:
        super().__init__(bucket, f"clusters/{name}", ClusterProperty.ALL, record=identity)
        self.name = name

    @property
    def identity(self) -> ClusterIdentity:
        return self.record
