"""Feature installer that records installations in memory.

Pairs with MemoryProvider: nothing is executed on hosts, every add() is
recorded so the installed software of a cluster can be inspected. Failures
can be injected per feature (and optionally per host) to exercise error paths.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass

from loguru import logger

from cumulus.core.exceptions import FeatureError
from cumulus.install.feature import Results, Settings, StepResult, Target, Variables

log = logger.bind(component="installer")


@dataclass(frozen=True, slots=True)
class Installation:
    feature: str
    target: str
    host: str
    variables: dict[str, object]


class LocalFeature:
    def __init__(self, name: str, installer: LocalInstaller) -> None:
        self._name = name
        self._installer = installer

    @property
    def name(self) -> str:
        return self._name

    async def add(
        self,
        target: Target,
        variables: Variables | None = None,
        settings: Settings | None = None,
    ) -> Results:
        hosts = target.hosts()
        if not hosts:
            raise FeatureError(self._name, target.label, "target has no host")

        results = Results(self._name)
        for host in hosts:
            if self._installer.delay:
                await asyncio.sleep(self._installer.delay)
            error = self._installer.injected_failure(self._name, host.name)
            if error is not None:
                results.record("add", StepResult(host.name, False, error))
                continue
            self._installer.installations.append(
                Installation(self._name, target.label, host.name, dict(variables or {}))
            )
            results.record("add", StepResult(host.name, True))

        log.debug(
            "Feature {feature} on {target}: {status}",
            feature=self._name,
            target=target.label,
            status="ok" if results.successful() else "failed",
        )
        return results


class LocalInstaller:
    """In-memory FeatureInstaller.

    Args:
        known: Feature names accepted by new_feature(). None accepts any name.
        delay: Seconds spent per host installation.
    """

    def __init__(self, known: Iterable[str] | None = None, delay: float = 0.0) -> None:
        self.known = frozenset(known) if known is not None else None
        self.delay = delay
        self.installations: list[Installation] = []
        self._failures: dict[tuple[str, str | None], str] = {}

    def new_feature(self, name: str) -> LocalFeature:
        if self.known is not None and name not in self.known:
            raise FeatureError(name, "installer", "unknown feature")
        return LocalFeature(name, self)

    def fail(self, feature: str, host: str | None = None, message: str = "installation failed") -> None:
        """Make every later add() of feature fail, on host only if given."""
        self._failures[(feature, host)] = message

    def injected_failure(self, feature: str, host: str) -> str | None:
        return self._failures.get((feature, host)) or self._failures.get((feature, None))

    def installed(self, feature: str) -> list[str]:
        """Names of the hosts feature was added to, in order."""
        return [i.host for i in self.installations if i.feature == feature]

    def features_of(self, host: str) -> list[str]:
        return [i.feature for i in self.installations if i.host == host]
