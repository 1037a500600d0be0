"""TOML-based tenant and cluster configuration.

Loads ~/.cumulus/defaults.toml (global) and cumulus.toml (project), merges
them, and resolves named tenants and clusters:

    [tenants.dev]
    dns = ["1.1.1.1"]
    metadata = "~/.cumulus/metadata"

    [tenants.dev.provider]
    type = "memory"

    [clusters.demo]
    tenant = "dev"
    cidr = "192.168.10.0/24"
    flavor = "swarm"
    complexity = "normal"

    [clusters.demo.nodes]
    cores = 8
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from cumulus.api.model import Complexity, Flavor, HostDefinition, Image, Template
from cumulus.api.provider import ProviderConfig
from cumulus.cluster.request import ClusterRequest
from cumulus.core.exceptions import ConfigurationError
from cumulus.providers.memory import Memory
from cumulus.tenant import Tenant

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".cumulus" / "defaults.toml"
PROJECT_CONFIG_NAME = "cumulus.toml"


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("tenants", {})
    merged.setdefault("clusters", {})
    return merged


def _build_memory(raw: RawConfig) -> Memory:
    if "templates" in raw:
        raw["templates"] = tuple(Template(**t) for t in raw["templates"])
    if "images" in raw:
        raw["images"] = tuple(Image(**i) for i in raw["images"])
    return Memory(**raw)


_PROVIDERS = {
    "memory": _build_memory,
}


def _build_provider(tenant: str, raw: RawConfig) -> ProviderConfig[Any]:
    raw = dict(raw)
    provider_type = raw.pop("type", None)
    if provider_type is None:
        raise ConfigurationError(f"Provider of tenant '{tenant}' missing 'type' field")

    build = _PROVIDERS.get(provider_type)
    if build is None:
        raise ConfigurationError(
            f"Unknown provider type '{provider_type}'. Valid: {', '.join(_PROVIDERS)}"
        )
    try:
        return build(raw)
    except TypeError as e:
        raise ConfigurationError(f"Invalid provider of tenant '{tenant}': {e}") from e


def _section(config: RawConfig, kind: str, name: str) -> RawConfig:
    entries = config[kind]
    if name not in entries:
        label = kind[:-1].capitalize()
        raise KeyError(f"{label} '{name}' not found. Available: {', '.join(entries) or 'none'}")
    return dict(entries[name])


def _tenant_from(name: str, raw: RawConfig) -> Tenant:
    raw_provider = raw.pop("provider", None)
    if raw_provider is None:
        raise ConfigurationError(f"Tenant '{name}' missing 'provider' table")

    return Tenant(
        name=name,
        provider=_build_provider(name, raw_provider),
        dns_servers=tuple(raw.pop("dns", ())),
        metadata_path=raw.pop("metadata", None),
        default_image=raw.pop("default_image", None),
    )


def resolve_tenant(
    name: str,
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> Tenant:
    config = load_config(project_dir=project_dir, global_path=global_path)
    return _tenant_from(name, _section(config, "tenants", name))


def _enum[E](cls: type[E], value: str, field: str, cluster: str) -> E:
    try:
        return cls(value)  # type: ignore[call-arg]
    except ValueError:
        valid = ", ".join(str(m) for m in cls)  # type: ignore[attr-defined]
        raise ConfigurationError(
            f"Invalid {field} '{value}' for cluster '{cluster}'. Valid: {valid}"
        ) from None


def resolve_request(
    name: str,
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> tuple[ClusterRequest, Tenant]:
    """Build the request of cluster name and the tenant it belongs to."""
    config = load_config(project_dir=project_dir, global_path=global_path)
    raw = _section(config, "clusters", name)

    tenant_ref = raw.pop("tenant", None)
    if tenant_ref is None:
        raise ConfigurationError(f"Cluster '{name}' missing 'tenant' field")
    tenant = _tenant_from(tenant_ref, _section(config, "tenants", tenant_ref))

    cidr = raw.pop("cidr", None)
    if cidr is None:
        raise ConfigurationError(f"Cluster '{name}' missing 'cidr' field")

    raw_nodes = raw.pop("nodes", None)
    try:
        node_sizing = HostDefinition(**raw_nodes) if raw_nodes else None
    except TypeError as e:
        raise ConfigurationError(f"Invalid node sizing of cluster '{name}': {e}") from e

    request = ClusterRequest(
        name=name,
        cidr=cidr,
        flavor=_enum(Flavor, raw.pop("flavor", Flavor.BOH), "flavor", name),
        complexity=_enum(Complexity, raw.pop("complexity", Complexity.SMALL), "complexity", name),
        tenant=tenant.name,
        node_sizing=node_sizing,
        keep_on_failure=bool(raw.pop("keep_on_failure", False)),
    )
    if raw:
        raise ConfigurationError(f"Unknown fields for cluster '{name}': {', '.join(raw)}")
    return request, tenant
