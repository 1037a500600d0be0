"""Metadata store: durable entities with independently lockable property groups.

Public API:
    MetadataBucket - storage protocol (MemoryBucket, DiskBucket)
    Metadata       - entity record + property groups, read/write/delete
    Properties     - per-group read/write locks with persist-on-release
    PropertyKey    - typed, versioned property group address
    PropertyLock   - scoped access (async with / then_use)
    ReadWriteLock  - asyncio many-readers/one-writer lock
"""

from cumulus.metadata.bucket import DiskBucket, MemoryBucket, MetadataBucket
from cumulus.metadata.entity import Metadata
from cumulus.metadata.lock import ReadWriteLock
from cumulus.metadata.properties import Properties, PropertyKey, PropertyLock

__all__ = [
    "DiskBucket",
    "MemoryBucket",
    "Metadata",
    "MetadataBucket",
    "Properties",
    "PropertyKey",
    "PropertyLock",
    "ReadWriteLock",
]
