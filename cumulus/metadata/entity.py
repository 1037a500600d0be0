"""Durable entity metadata: one main record plus versioned property groups.

Layout inside the bucket::

    <prefix>/record                       main record (identity, host, ...)
    <prefix>/properties/<name>.v<version> one object per property group
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from loguru import logger

from cumulus.core.exceptions import MetadataError
from cumulus.infra.serialization import deserialize, serialize
from cumulus.metadata.bucket import MetadataBucket
from cumulus.metadata.properties import Properties, PropertyKey


class Metadata[R]:
    def __init__(
        self,
        bucket: MetadataBucket,
        prefix: str,
        keys: Iterable[PropertyKey[Any]],
        record: R | None = None,
    ) -> None:
        self._bucket = bucket
        self._prefix = prefix.rstrip("/")
        self._record = record
        self.properties = Properties(keys, persist=self._persist_property)
        self._log = logger.bind(component="metadata", entity=self._prefix)

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def record(self) -> R:
        if self._record is None:
            raise MetadataError(f"metadata of '{self._prefix}' not loaded")
        return self._record

    @record.setter
    def record(self, value: R) -> None:
        self._record = value

    def _record_path(self) -> str:
        return f"{self._prefix}/record"

    def _property_path(self, key: PropertyKey[Any]) -> str:
        return f"{self._prefix}/properties/{key.storage_name}"

    async def _persist_property(self, key: PropertyKey[Any], value: Any) -> None:
        await self._bucket.write(self._property_path(key), serialize(value))

    async def read(self) -> bool:
        """Load record and property groups; returns False if the entity is absent."""
        try:
            raw = await self._bucket.read(self._record_path())
            if raw is None:
                return False
            values: dict[str, Any] = {}
            for key in self.properties.keys:
                data = await self._bucket.read(self._property_path(key))
                if data is not None:
                    values[key.storage_name] = deserialize(data)
        except MetadataError:
            raise
        except Exception as e:
            raise MetadataError(f"failed to read metadata of '{self._prefix}': {e}") from e

        self._record = deserialize(raw)
        self.properties.load(values)
        self._log.trace("metadata read")
        return True

    async def write(self) -> None:
        """Persist the record and the committed value of every property group."""
        record = self.record
        snapshot = self.properties.snapshot()
        try:
            await self._bucket.write(self._record_path(), serialize(record))
            for key in self.properties.keys:
                await self._bucket.write(
                    self._property_path(key), serialize(snapshot[key.storage_name]),
                )
        except Exception as e:
            raise MetadataError(f"failed to write metadata of '{self._prefix}': {e}") from e
        self._log.trace("metadata written")

    async def delete(self) -> None:
        try:
            for path in await self._bucket.list(f"{self._prefix}/"):
                await self._bucket.delete(path)
        except Exception as e:
            raise MetadataError(f"failed to delete metadata of '{self._prefix}': {e}") from e
        self._log.trace("metadata deleted")

    async def exists(self) -> bool:
        try:
            return await self._bucket.read(self._record_path()) is not None
        except Exception as e:
            raise MetadataError(f"failed to inspect metadata of '{self._prefix}': {e}") from e
