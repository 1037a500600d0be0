"""Envelope format of metadata payloads.

Every object stored in a metadata bucket is a cloudpickle payload behind a
five byte header::

    b"CUM" | format version (1 byte) | flags (1 byte) | payload

Payloads above COMPRESSION_THRESHOLD bytes are zlib-compressed when that
makes them smaller; the FLAG_ZLIB bit tells the reader.
"""

from __future__ import annotations

import zlib
from typing import Any, Final

import cloudpickle
from loguru import logger

from cumulus.core.exceptions import MetadataError

log = logger.bind(component="serialization")

MAGIC: Final = b"CUM"
FORMAT_VERSION: Final = 1
FLAG_ZLIB: Final = 0x01
COMPRESSION_THRESHOLD: Final = 512
COMPRESSION_LEVEL: Final = 1

_HEADER_SIZE: Final = len(MAGIC) + 2


def serialize(obj: Any, compress: bool = True) -> bytes:
    """Encode obj into a metadata envelope.

    Args:
        obj: Property group payload or entity record.
        compress: Allow zlib compression of large payloads.
    """
    body: bytes = cloudpickle.dumps(obj)
    flags = 0

    if compress and len(body) > COMPRESSION_THRESHOLD:
        packed = zlib.compress(body, level=COMPRESSION_LEVEL)
        if len(packed) < len(body):
            log.trace("Compressed {raw} -> {packed} bytes", raw=len(body), packed=len(packed))
            body, flags = packed, flags | FLAG_ZLIB

    return MAGIC + bytes((FORMAT_VERSION, flags)) + body


def deserialize(data: bytes) -> Any:
    """Decode a metadata envelope.

    Raises:
        MetadataError: If the header is missing, the format version is
            unknown or the payload is corrupted.
    """
    if len(data) < _HEADER_SIZE or not data.startswith(MAGIC):
        raise MetadataError("corrupted metadata payload: missing header")

    version, flags = data[len(MAGIC)], data[len(MAGIC) + 1]
    if version != FORMAT_VERSION:
        raise MetadataError(f"unsupported metadata format version {version}")

    body = data[_HEADER_SIZE:]
    try:
        if flags & FLAG_ZLIB:
            body = zlib.decompress(body)
        return cloudpickle.loads(body)
    except Exception as e:
        log.error("Deserialization failed: {err}", err=e)
        raise MetadataError(f"corrupted metadata payload: {e}") from e
