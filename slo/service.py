from __future__ import annotations

import threading
from typing import Mapping, Sequence

from docker.errors import DockerException

from . import db
from .base import BaseService, DockerService
from .docker_ops import ClientFactory, DockerClientFactory, RuntimeClient
from .errors import ContainerExitError, ContainerWaitError
from .labels import SYSLOG_DRIVER, ServicePolicy
from .models import ContainerRef, LifecycleResult, Lookup, Presence, Relationship, ServiceConfig, link
from .settings import settings


class Service:
    """Wraps a base service with dependency inference and lifecycle sequencing.

    Every call runs synchronously. The only blocking point is the optional
    wait for a container to exit, which honors a caller supplied timeout and
    cancel token.
    """

    def __init__(
        self,
        base: BaseService,
        deps: Mapping[str, Sequence[str]],
        client_factory: ClientFactory,
    ):
        self.base = base
        self.deps = deps
        self._factory = client_factory
        self.policy = ServicePolicy.from_labels(base.config.labels)

    @property
    def name(self) -> str:
        return self.base.name

    @property
    def config(self) -> ServiceConfig:
        return self.base.config

    def _client(self) -> RuntimeClient:
        return self._factory.create(self)

    # --- relationships ---

    def dependent_services(self) -> list[Relationship]:
        rels = list(self.base.dependent_services())
        for dep in self.deps.get(self.name, ()):
            rels.append(link(dep))

        if self._requires_syslog():
            rels.append(link("syslog", optional=True))

        if self.policy.user_scoped:
            # Nothing signals user services when cloud-init reconfigures, so
            # they link to it to be re-run whenever it is.
            rels.append(link("cloud-init", optional=True))
        elif self._missing_image():
            rels.append(link("network", optional=True))
        return rels

    def _requires_syslog(self) -> bool:
        return self.config.log_driver == SYSLOG_DRIVER

    def _missing_image(self) -> bool:
        image = self.config.image
        if not image:
            return False
        try:
            client = self._client()
        except DockerException as e:
            res = Lookup.failed(e)
        else:
            res = client.inspect_image(image)
        if res.presence is Presence.FAILED:
            db.log_event("WARN", f"Image lookup for {image} failed, treating as missing: {res.error}", service_name=self.name)
        return not res.found

    # --- container identity ---

    def _container(self) -> tuple[RuntimeClient, ContainerRef] | None:
        """Inspect the first container of the service, or None if there is none."""
        containers = self.base.containers()
        if not containers:
            return None
        client = self._client()
        res = client.inspect_container(containers[0].id)
        if res.presence is Presence.FAILED:
            raise res.error  # type: ignore[misc]
        if res.presence is Presence.ABSENT:
            return None
        return client, res.value

    def reconcile(self) -> bool:
        """Rename the service's container to the service name. Returns True if renamed."""
        found = self._container()
        if found is None:
            return False
        client, info = found
        current = info.display_name
        if not current or current == self.name:
            return False
        db.log_event("DEBUG", f"Renaming container {current} => {self.name}", service_name=self.name)
        client.rename_container(current, self.name)
        return True

    # --- completion ---

    def wait(self, timeout_s: float | None = None, cancel: threading.Event | None = None) -> None:
        found = self._container()
        if found is None:
            return
        client, info = found
        if timeout_s is None:
            timeout_s = settings.wait_timeout_s
        status = client.wait(info.id, timeout_s=timeout_s or None, cancel=cancel)
        if status.error:
            raise ContainerWaitError(status.error)
        if status.exit_code != 0:
            raise ContainerExitError(status.exit_code)

    # --- lifecycle ---

    def create(self) -> LifecycleResult:
        try:
            self.base.create()
            self.reconcile()
        except Exception as e:
            return LifecycleResult.failure(self.name, e)
        return LifecycleResult.success(self.name)

    def up(self, timeout_s: float | None = None, cancel: threading.Event | None = None) -> LifecycleResult:
        """Create, name, start and optionally wait on the service's container.

        A `create_only` service is never started. A service with
        `detach=false` is waited on until its container exits; a non-zero
        exit code is a failure. When `reload_config` is set a successful run
        yields RESTART_REQUESTED instead of SUCCESS.
        """
        try:
            self.base.create()
            self.reconcile()
            if not self.policy.create_only:
                self.base.up()
                if self.policy.wait_for_exit:
                    self.wait(timeout_s, cancel)
        except Exception as e:
            return LifecycleResult.failure(self.name, e)
        return self._check_reload()

    def _check_reload(self) -> LifecycleResult:
        if self.policy.reload_config:
            db.log_event("INFO", "Configuration reload requested", service_name=self.name)
            return LifecycleResult.restart(self.name)
        return LifecycleResult.success(self.name)


class ServiceFactory:
    """Builds lifecycle services sharing one dependency index and client factory."""

    def __init__(
        self,
        deps: Mapping[str, Sequence[str]] | None = None,
        client_factory: ClientFactory | None = None,
        project_name: str | None = None,
    ):
        self.deps: Mapping[str, Sequence[str]] = deps or {}
        self.client_factory = client_factory or DockerClientFactory()
        self.project_name = project_name or settings.project_name

    def create(self, name: str, config: ServiceConfig) -> Service:
        base = DockerService(name, config, self.client_factory, self.project_name)
        return Service(base, self.deps, self.client_factory)
