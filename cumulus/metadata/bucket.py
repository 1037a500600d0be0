"""Storage backends for metadata.

A bucket is a flat key/value store of opaque bytes addressed by
slash-separated paths (``clusters/demo/properties/nodes.v1``).
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class MetadataBucket(Protocol):
    async def read(self, path: str) -> bytes | None:
        """Return the object at path, or None if absent."""
        ...

    async def write(self, path: str, data: bytes) -> None: ...

    async def delete(self, path: str) -> None:
        """Delete the object at path. Deleting a missing object is not an error."""
        ...

    async def list(self, prefix: str) -> list[str]:
        """Paths of every object whose path starts with prefix."""
        ...


class MemoryBucket:
    """In-process bucket, for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._objects: dict[str, bytes] = {}

    async def read(self, path: str) -> bytes | None:
        return self._objects.get(path)

    async def write(self, path: str, data: bytes) -> None:
        self._objects[path] = data

    async def delete(self, path: str) -> None:
        self._objects.pop(path, None)

    async def list(self, prefix: str) -> list[str]:
        return sorted(p for p in self._objects if p.startswith(prefix))


class DiskBucket:
    """Bucket stored as a directory tree, one file per object.

    Writes go through a temporary file and an atomic rename so a reader
    never sees a partially written object. File I/O runs in worker threads.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()
        self._log = logger.bind(component="bucket", root=str(self.root))

    def _path(self, path: str) -> Path:
        return self.root / path

    async def read(self, path: str) -> bytes | None:
        def _read() -> bytes | None:
            p = self._path(path)
            return p.read_bytes() if p.is_file() else None

        return await asyncio.to_thread(_read)

    async def write(self, path: str, data: bytes) -> None:
        def _write() -> None:
            p = self._path(path)
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp = p.with_name(f".{p.name}.tmp")
            tmp.write_bytes(data)
            os.replace(tmp, p)

        self._log.trace("write {path} ({size} bytes)", path=path, size=len(data))
        await asyncio.to_thread(_write)

    async def delete(self, path: str) -> None:
        def _delete() -> None:
            self._path(path).unlink(missing_ok=True)

        await asyncio.to_thread(_delete)

    async def list(self, prefix: str) -> list[str]:
        def _list() -> list[str]:
            if not self.root.is_dir():
                return []
            found = (
                p.relative_to(self.root).as_posix()
                for p in self.root.rglob("*")
                if p.is_file() and not p.name.startswith(".")
            )
            return sorted(p for p in found if p.startswith(prefix))

        return await asyncio.to_thread(_list)
