import pytest

from cumulus import ClusterTarget, FeatureError, Host, HostTarget, LocalInstaller, Node
from cumulus.install.feature import Results, StepResult

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

NODE_A = Node(id="h-1", name="a", private_ip="10.0.0.1")
NODE_B = Node(id="h-2", name="b", private_ip="10.0.0.2")


class TestTargets:
    def test_host_target_from_host(self):
        host = Host(id="h-1", name="a", network_id="n", private_ip="10.0.0.1", public_ip="203.0.113.1")
        target = HostTarget.of(host)
        assert target.name == "a"
        assert target.label == "host 'a'"
        assert target.hosts() == (Node(id="h-1", name="a", private_ip="10.0.0.1", public_ip="203.0.113.1"),)

    def test_host_target_from_node(self):
        assert HostTarget.of(NODE_A).host is NODE_A

    def test_cluster_target(self):
        target = ClusterTarget("demo", (NODE_A, NODE_B))
        assert target.name == "demo"
        assert target.label == "cluster 'demo'"
        assert target.hosts() == (NODE_A, NODE_B)


class TestResults:
    def test_successful(self):
        results = Results("docker")
        results.record("add", StepResult("a", True))
        assert results.successful()
        assert results.all_error_messages() == ""

    def test_error_messages(self):
        results = Results("docker")
        results.record("check", StepResult("a", True))
        results.record("add", StepResult("a", False, "apt locked"))
        results.record("add", StepResult("b", False, "disk full"))
        assert not results.successful()
        assert results.all_error_messages() == "add on a: apt locked\nadd on b: disk full"


class TestLocalInstaller:
    @pytest.mark.asyncio
    async def test_records_installations(self):
        installer = LocalInstaller()
        results = await installer.new_feature("docker").add(
            ClusterTarget("demo", (NODE_A, NODE_B)), {"Version": "24"},
        )

        assert results.successful()
        assert installer.installed("docker") == ["a", "b"]
        assert installer.features_of("b") == ["docker"]
        assert installer.installations[0].target == "cluster 'demo'"
        assert installer.installations[0].variables == {"Version": "24"}

    @pytest.mark.asyncio
    async def test_injected_failure_on_one_host(self):
        installer = LocalInstaller()
        installer.fail("docker", host="b", message="boom")
        results = await installer.new_feature("docker").add(ClusterTarget("demo", (NODE_A, NODE_B)))

        assert not results.successful()
        assert results.all_error_messages() == "add on b: boom"
        assert installer.installed("docker") == ["a"]

    @pytest.mark.asyncio
    async def test_injected_failure_everywhere(self):
        installer = LocalInstaller()
        installer.fail("docker")
        results = await installer.new_feature("docker").add(HostTarget.of(NODE_A))
        assert not results.successful()

    def test_unknown_feature(self):
        installer = LocalInstaller(known={"docker"})
        with pytest.raises(FeatureError, match="unknown feature"):
            installer.new_feature("kubernetes")

    @pytest.mark.asyncio
    async def test_target_without_host(self):
        feature = LocalInstaller().new_feature("remotedesktop")
        with pytest.raises(FeatureError, match="target has no host"):
            await feature.add(ClusterTarget("demo", ()))
