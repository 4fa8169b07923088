from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from . import db
from .definitions import DeploymentDefinition
from .docker_ops import ClientFactory
from .errors import DependencyCycleError, UnknownServiceError
from .models import LifecycleResult, Outcome
from .service import Service, ServiceFactory


@dataclass
class ProjectResult:
    outcome: Outcome
    results: list[LifecycleResult] = field(default_factory=list)
    stopped_at: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "stopped_at": self.stopped_at,
            "services": [r.as_dict() for r in self.results],
        }


class Project:
    """Orders a deployment's services by their relationships and runs them."""

    def __init__(self, services: Mapping[str, Service]):
        self.services: dict[str, Service] = dict(services)

    @classmethod
    def from_definition(
        cls,
        definition: DeploymentDefinition,
        client_factory: ClientFactory | None = None,
        project_name: str | None = None,
    ) -> "Project":
        factory = ServiceFactory(definition.dependencies, client_factory, project_name)
        return cls({name: factory.create(name, d.to_config()) for name, d in definition.services.items()})

    def get(self, name: str) -> Service:
        try:
            return self.services[name]
        except KeyError:
            raise UnknownServiceError(name) from None

    def order(self, names: Iterable[str] | None = None) -> list[str]:
        """Start order for `names` (default: all) with dependencies first.

        Optional relationships to services outside the project are dropped;
        required ones raise UnknownServiceError.
        """
        targets = list(names) if names else list(self.services)
        ordered: list[str] = []
        visited: set[str] = set()
        processing: list[str] = []

        def visit(name: str, required_by: str | None) -> None:
            if name not in self.services:
                raise UnknownServiceError(name, required_by)
            if name in processing:
                raise DependencyCycleError(processing[processing.index(name):] + [name])
            if name in visited:
                return
            processing.append(name)
            for rel in self.services[name].dependent_services():
                if rel.target == name:
                    continue
                if rel.target not in self.services:
                    if rel.optional:
                        continue
                    raise UnknownServiceError(rel.target, name)
                visit(rel.target, name)
            processing.pop()
            visited.add(name)
            ordered.append(name)

        for n in targets:
            visit(n, None)
        return ordered

    def create(self, names: Iterable[str] | None = None) -> ProjectResult:
        results: list[LifecycleResult] = []
        for name in self.order(names):
            res = self.services[name].create()
            results.append(res)
            if res.failed:
                db.log_event("ERROR", f"Create failed: {res.error}", service_name=name)
                return ProjectResult(Outcome.FAILURE, results, stopped_at=name)
        return ProjectResult(Outcome.SUCCESS, results)

    def up(
        self,
        names: Iterable[str] | None = None,
        timeout_s: float | None = None,
        cancel: threading.Event | None = None,
        reloaded: Iterable[str] = (),
    ) -> ProjectResult:
        """Bring services up in dependency order.

        Stops at the first failure or restart request. Services listed in
        `reloaded` already triggered a reload in this session, so a restart
        request from them counts as success.
        """
        already = set(reloaded)
        results: list[LifecycleResult] = []
        for name in self.order(names):
            res = self.services[name].up(timeout_s=timeout_s, cancel=cancel)
            if res.restart_requested and name in already:
                res = LifecycleResult.success(name)
            results.append(res)
            if res.failed:
                db.log_event("ERROR", f"Up failed: {res.error}", service_name=name)
                return ProjectResult(Outcome.FAILURE, results, stopped_at=name)
            if res.restart_requested:
                return ProjectResult(Outcome.RESTART_REQUESTED, results, stopped_at=name)
        return ProjectResult(Outcome.SUCCESS, results)
