"""Versioned property groups with per-group read/write locking.

Each entity (cluster, host) owns a ``Properties`` object holding one typed
payload per property group. Every group has its own lock, so mutating the
Nodes group never waits on a reader of the Features group.

Example:
    async with cluster.properties.lock_for_write(ClusterProperty.NODES_V1) as nodes:
        nodes.master_last_index += 1
        index = nodes.master_last_index

    disabled = await cluster.properties.lock_for_read(ClusterProperty.FEATURES_V1).then_use(
        lambda features: "reverseproxy" in features.disabled
    )
"""

from __future__ import annotations

import copy
import inspect
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from types import TracebackType
from typing import Any

from cumulus.core.exceptions import MetadataError
from cumulus.metadata.lock import ReadWriteLock

type Persist = Callable[[PropertyKey[Any], Any], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class PropertyKey[T]:
    """Typed address of a property group.

    The payload type travels with the key, so ``lock_for_write(key)`` hands
    back a ``T`` without any runtime downcast.
    """

    name: str
    version: int
    factory: Callable[[], T]

    @property
    def storage_name(self) -> str:
        return f"{self.name}.v{self.version}"


class PropertyLock[T]:
    """Scoped access to one property group.

    Usable as an async context manager yielding the payload, or through
    ``then_use(fn)`` which runs ``fn(payload)`` (sync or async) inside the scope.
    """

    __slots__ = ("_factory", "_cm")

    def __init__(self, factory: Callable[[], AbstractAsyncContextManager[T]]) -> None:
        self._factory = factory
        self._cm: AbstractAsyncContextManager[T] | None = None

    async def __aenter__(self) -> T:
        self._cm = self._factory()
        return await self._cm.__aenter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        assert self._cm is not None
        cm, self._cm = self._cm, None
        return await cm.__aexit__(exc_type, exc, tb)

    async def then_use[R](self, fn: Callable[[T], R | Awaitable[R]]) -> R:
        async with self as payload:
            r = fn(payload)
            if inspect.isawaitable(r):
                r = await r
            return r  # type: ignore[return-value]


class Properties:
    """Property groups of one entity.

    Readers get a private copy of the committed payload. A writer works on a
    copy too; the copy is persisted when the scope exits normally and only
    then becomes the committed value. If the scope body or the persist raises,
    the committed value is left untouched.
    """

    def __init__(self, keys: Iterable[PropertyKey[Any]], persist: Persist | None = None) -> None:
        self._keys = {k.storage_name: k for k in keys}
        self._locks = {name: ReadWriteLock() for name in self._keys}
        self._values: dict[str, Any] = {}
        self._persist = persist

    @property
    def keys(self) -> tuple[PropertyKey[Any], ...]:
        return tuple(self._keys.values())

    def _check(self, key: PropertyKey[Any]) -> str:
        name = key.storage_name
        if name not in self._keys:
            raise MetadataError(f"unknown property group '{name}'")
        return name

    def _committed(self, name: str) -> Any:
        if name not in self._values:
            self._values[name] = self._keys[name].factory()
        return self._values[name]

    def lock_for_read[T](self, key: PropertyKey[T]) -> PropertyLock[T]:
        return PropertyLock(lambda: self._read_scope(key))

    def lock_for_write[T](self, key: PropertyKey[T]) -> PropertyLock[T]:
        return PropertyLock(lambda: self._write_scope(key))

    @asynccontextmanager
    async def _read_scope[T](self, key: PropertyKey[T]) -> AsyncIterator[T]:
        name = self._check(key)
        async with self._locks[name].read():
            yield copy.deepcopy(self._committed(name))

    @asynccontextmanager
    async def _write_scope[T](self, key: PropertyKey[T]) -> AsyncIterator[T]:
        name = self._check(key)
        async with self._locks[name].write():
            working = copy.deepcopy(self._committed(name))
            yield working
            if self._persist is not None:
                try:
                    await self._persist(key, working)
                except MetadataError:
                    raise
                except Exception as e:
                    raise MetadataError(f"failed to persist property '{name}': {e}") from e
            self._values[name] = working

    def snapshot(self) -> dict[str, Any]:
        """Copies of every committed payload, keyed by storage name."""
        return {name: copy.deepcopy(self._committed(name)) for name in self._keys}

    def load(self, values: Mapping[str, Any]) -> None:
        """Replace committed payloads with values read from storage."""
        for name, value in values.items():
            if name in self._keys:
                self._values[name] = value
