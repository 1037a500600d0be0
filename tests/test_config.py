from pathlib import Path

import pytest

from cumulus import Complexity, ConfigurationError, Flavor, HostDefinition, Memory
from cumulus.config import _deep_merge, load_config, resolve_request, resolve_tenant

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

TENANT = (
    '[tenants.dev]\n'
    'dns = ["1.1.1.1", "8.8.8.8"]\n'
    'metadata = "/var/lib/cumulus"\n'
    '\n'
    '[tenants.dev.provider]\n'
    'type = "memory"\n'
    'latency = 0.5\n'
)


def _write(tmp_path: Path, text: str) -> Path:
    (tmp_path / "cumulus.toml").write_text(text)
    return tmp_path / "nonexistent.toml"


class TestDeepMerge:
    def test_shallow_override(self):
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self):
        base = {"tenants": {"dev": {"dns": ["1.1.1.1"], "metadata": "/tmp"}}}
        override = {"tenants": {"dev": {"dns": ["9.9.9.9"]}}}
        assert _deep_merge(base, override) == {
            "tenants": {"dev": {"dns": ["9.9.9.9"], "metadata": "/tmp"}}
        }

    def test_override_adds_new_keys(self):
        base = {"clusters": {"a": {"cidr": "10.0.0.0/24"}}}
        override = {"clusters": {"b": {"cidr": "10.1.0.0/24"}}}
        assert _deep_merge(base, override) == {
            "clusters": {"a": {"cidr": "10.0.0.0/24"}, "b": {"cidr": "10.1.0.0/24"}}
        }


class TestLoadConfig:
    def test_no_files_returns_empty_sections(self, tmp_path: Path):
        result = load_config(project_dir=tmp_path / "nope", global_path=tmp_path / "nope.toml")
        assert result == {"tenants": {}, "clusters": {}}

    def test_project_overrides_global(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text('[clusters.demo]\ncidr = "10.0.0.0/24"\ntenant = "dev"\n')
        project_dir = tmp_path / "project"
        project_dir.mkdir()
        (project_dir / "cumulus.toml").write_text('[clusters.demo]\ncidr = "10.9.0.0/24"\n')

        result = load_config(project_dir=project_dir, global_path=global_toml)
        assert result["clusters"]["demo"] == {"cidr": "10.9.0.0/24", "tenant": "dev"}

    def test_invalid_toml(self, tmp_path: Path):
        missing = _write(tmp_path, "[tenants.dev\n")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(project_dir=tmp_path, global_path=missing)


class TestResolveTenant:
    def test_memory_tenant(self, tmp_path: Path):
        missing = _write(tmp_path, TENANT)
        tenant = resolve_tenant("dev", project_dir=tmp_path, global_path=missing)

        assert tenant.name == "dev"
        assert tenant.dns_servers == ("1.1.1.1", "8.8.8.8")
        assert tenant.metadata_path == "/var/lib/cumulus"
        assert isinstance(tenant.provider, Memory)
        assert tenant.provider.latency == 0.5

    def test_custom_templates(self, tmp_path: Path):
        missing = _write(
            tmp_path,
            '[tenants.dev.provider]\n'
            'type = "memory"\n'
            'templates = [{ id = "t-1", name = "tiny", cores = 1, ram_size = 1.0, disk_size = 10 }]\n',
        )
        tenant = resolve_tenant("dev", project_dir=tmp_path, global_path=missing)
        assert [t.name for t in tenant.provider.templates] == ["tiny"]

    def test_unknown_tenant(self, tmp_path: Path):
        missing = _write(tmp_path, TENANT)
        with pytest.raises(KeyError, match="Tenant 'prod' not found. Available: dev"):
            resolve_tenant("prod", project_dir=tmp_path, global_path=missing)

    def test_missing_provider(self, tmp_path: Path):
        missing = _write(tmp_path, '[tenants.dev]\ndns = []\n')
        with pytest.raises(ConfigurationError, match="missing 'provider'"):
            resolve_tenant("dev", project_dir=tmp_path, global_path=missing)

    def test_unknown_provider_type(self, tmp_path: Path):
        missing = _write(tmp_path, '[tenants.dev.provider]\ntype = "nimbus"\n')
        with pytest.raises(ConfigurationError, match="Unknown provider type 'nimbus'"):
            resolve_tenant("dev", project_dir=tmp_path, global_path=missing)

    def test_unknown_provider_field(self, tmp_path: Path):
        missing = _write(tmp_path, '[tenants.dev.provider]\ntype = "memory"\nregion = "x"\n')
        with pytest.raises(ConfigurationError, match="Invalid provider of tenant 'dev'"):
            resolve_tenant("dev", project_dir=tmp_path, global_path=missing)


class TestResolveRequest:
    def test_full_cluster(self, tmp_path: Path):
        missing = _write(
            tmp_path,
            TENANT
            + '\n[clusters.demo]\n'
            'tenant = "dev"\n'
            'cidr = "192.168.10.0/24"\n'
            'flavor = "swarm"\n'
            'complexity = "normal"\n'
            'keep_on_failure = true\n'
            '\n'
            '[clusters.demo.nodes]\n'
            'cores = 8\n'
            'ram_size = 32.0\n',
        )
        request, tenant = resolve_request("demo", project_dir=tmp_path, global_path=missing)

        assert tenant.name == "dev"
        assert request.cidr == "192.168.10.0/24"
        assert request.flavor is Flavor.SWARM
        assert request.complexity is Complexity.NORMAL
        assert request.tenant == "dev"
        assert request.keep_on_failure is True
        assert request.node_sizing == HostDefinition(cores=8, ram_size=32.0)

    def test_defaults(self, tmp_path: Path):
        missing = _write(tmp_path, TENANT + '\n[clusters.demo]\ntenant = "dev"\ncidr = "10.0.0.0/16"\n')
        request, _ = resolve_request("demo", project_dir=tmp_path, global_path=missing)

        assert request.flavor is Flavor.BOH
        assert request.complexity is Complexity.SMALL
        assert request.node_sizing is None
        assert request.keep_on_failure is False

    def test_invalid_flavor(self, tmp_path: Path):
        missing = _write(
            tmp_path, TENANT + '\n[clusters.demo]\ntenant = "dev"\ncidr = "10.0.0.0/16"\nflavor = "k8s"\n',
        )
        with pytest.raises(ConfigurationError, match="Invalid flavor 'k8s'"):
            resolve_request("demo", project_dir=tmp_path, global_path=missing)

    def test_unknown_field(self, tmp_path: Path):
        missing = _write(
            tmp_path, TENANT + '\n[clusters.demo]\ntenant = "dev"\ncidr = "10.0.0.0/16"\nmasters = 3\n',
        )
        with pytest.raises(ConfigurationError, match="Unknown fields for cluster 'demo': masters"):
            resolve_request("demo", project_dir=tmp_path, global_path=missing)

    def test_missing_cidr(self, tmp_path: Path):
        missing = _write(tmp_path, TENANT + '\n[clusters.demo]\ntenant = "dev"\n')
        with pytest.raises(ConfigurationError, match="missing 'cidr'"):
            resolve_request("demo", project_dir=tmp_path, global_path=missing)

    def test_invalid_name(self, tmp_path: Path):
        missing = _write(tmp_path, TENANT + '\n[clusters."9lives"]\ntenant = "dev"\ncidr = "10.0.0.0/16"\n')
        with pytest.raises(ConfigurationError, match="Invalid cluster name"):
            resolve_request("9lives", project_dir=tmp_path, global_path=missing)

    def test_unknown_cluster(self, tmp_path: Path):
        missing = _write(tmp_path, TENANT)
        with pytest.raises(KeyError, match="Cluster 'demo' not found. Available: none"):
            resolve_request("demo", project_dir=tmp_path, global_path=missing)
