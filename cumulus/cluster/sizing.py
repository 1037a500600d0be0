from __future__ import annotations

from dataclasses import replace

from cumulus.api.model import HostDefinition

BASELINE_CORES = 4
BASELINE_RAM_SIZE = 15.0
BASELINE_DISK_SIZE = 100


def complement_host_definition(
    request: HostDefinition | None,
    default: HostDefinition,
) -> HostDefinition:
    """Fill the unset fields of a sizing request.

    Each of cores, RAM and disk comes from the request if positive, else
    from the tier default if positive, else from the baseline (4 cores,
    15.0 GB RAM, 100 GB disk). An empty image falls back to the default's
    image. GPU count and CPU frequency are taken from the request as-is.
    Without a request the tier default is returned untouched.

    Example:
        >>> complement_host_definition(
        ...     HostDefinition(disk_size=500),
        ...     HostDefinition(cores=8, ram_size=32.0, disk_size=100),
        ... )
        HostDefinition(cores=8, ram_size=32.0, disk_size=500, ...)
    """
    if request is None:
        return default

    cores = request.cores if request.cores > 0 else default.cores
    ram_size = request.ram_size if request.ram_size > 0 else default.ram_size
    disk_size = request.disk_size if request.disk_size > 0 else default.disk_size

    return replace(
        request,
        cores=cores if cores > 0 else BASELINE_CORES,
        ram_size=ram_size if ram_size > 0 else BASELINE_RAM_SIZE,
        disk_size=disk_size if disk_size > 0 else BASELINE_DISK_SIZE,
        image_id=request.image_id or default.image_id,
    )
