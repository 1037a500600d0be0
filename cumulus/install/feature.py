"""Feature installation interface.

A feature is a named, idempotent piece of software (docker, reverseproxy,
remotedesktop, ...) added to a target: one host or a whole cluster.
Installers return a Results object instead of raising on script failures,
so callers decide how a partial failure is reported.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from cumulus.api.model import Host, Node

type Variables = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Settings:
    """Installation options.

    Attributes:
        skip_check: Do not verify the feature is already present before adding it.
        skip_proxy: Do not register the feature behind the gateway reverse proxy.
        timeout: Seconds allowed per host, None for the installer default.
    """

    skip_check: bool = False
    skip_proxy: bool = False
    timeout: float | None = None


@runtime_checkable
class Target(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def label(self) -> str: ...

    def hosts(self) -> Sequence[Node]: ...


@dataclass(frozen=True, slots=True)
class HostTarget:
    host: Node

    @classmethod
    def of(cls, host: Host | Node) -> HostTarget:
        if isinstance(host, Node):
            return cls(host)
        return cls(Node(id=host.id, name=host.name, private_ip=host.private_ip, public_ip=host.public_ip))

    @property
    def name(self) -> str:
        return self.host.name

    @property
    def label(self) -> str:
        return f"host '{self.host.name}'"

    def hosts(self) -> Sequence[Node]:
        return (self.host,)


@dataclass(frozen=True, slots=True)
class ClusterTarget:
    """Cluster-wide target; cluster features are installed on the masters."""

    cluster: str
    masters: tuple[Node, ...]

    @property
    def name(self) -> str:
        return self.cluster

    @property
    def label(self) -> str:
        return f"cluster '{self.cluster}'"

    def hosts(self) -> Sequence[Node]:
        return self.masters


@dataclass(frozen=True, slots=True)
class StepResult:
    host: str
    success: bool
    error: str = ""


@dataclass(slots=True)
class Results:
    """Outcome of adding a feature, one entry per host and step."""

    feature: str
    steps: dict[str, list[StepResult]] = field(default_factory=dict)

    def record(self, step: str, result: StepResult) -> None:
        self.steps.setdefault(step, []).append(result)

    def successful(self) -> bool:
        return all(r.success for results in self.steps.values() for r in results)

    def all_error_messages(self) -> str:
        return "\n".join(
            f"{step} on {r.host}: {r.error}"
            for step, results in self.steps.items()
            for r in results
            if not r.success
        )


@runtime_checkable
class Feature(Protocol):
    @property
    def name(self) -> str: ...

    async def add(
        self,
        target: Target,
        variables: Variables | None = None,
        settings: Settings | None = None,
    ) -> Results:
        """Install the feature on every host of the target.

        Raises FeatureError when the feature cannot even be attempted;
        per-host failures are reported through Results.
        """
        ...


@runtime_checkable
class FeatureInstaller(Protocol):
    def new_feature(self, name: str) -> Feature:
        """Return the feature called name; FeatureError if it is unknown."""
        ...
