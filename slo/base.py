from __future__ import annotations

from typing import Protocol

from . import db
from .docker_ops import PROJECT_LABEL, SERVICE_LABEL, ClientFactory
from .models import ContainerRef, Relationship, ServiceConfig, link
from .settings import settings


class BaseService(Protocol):
    """What the lifecycle layer needs from the service it wraps."""

    @property
    def name(self) -> str: ...

    @property
    def config(self) -> ServiceConfig: ...

    def containers(self) -> list[ContainerRef]: ...

    def create(self) -> None: ...

    def up(self) -> None: ...

    def dependent_services(self) -> list[Relationship]: ...


class DockerService:
    """Turns a ServiceConfig into a single labeled Docker container.

    Containers are labeled with project and service so they can be
    re-discovered across runs. New containers get a `<project>_<service>_1`
    name; the lifecycle layer renames them to the bare service name.
    """

    def __init__(
        self,
        name: str,
        config: ServiceConfig,
        client_factory: ClientFactory,
        project_name: str | None = None,
    ):
        self._name = name
        self._config = config
        self._factory = client_factory
        self.project_name = project_name or settings.project_name

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> ServiceConfig:
        return self._config

    def _selector(self) -> dict[str, str]:
        return {PROJECT_LABEL: self.project_name, SERVICE_LABEL: self._name}

    def containers(self) -> list[ContainerRef]:
        return self._factory.create(self).list_containers(self._selector())

    def create(self) -> None:
        if self.containers():
            return
        client = self._factory.create(self)
        image = self._config.image
        if not image:
            raise ValueError(f"Service '{self._name}' has no image configured")
        if settings.pull_missing and not client.inspect_image(image).found:
            db.log_event("INFO", f"Pulling image {image}", service_name=self._name)
            client.pull_image(image)

        labels = {**self._config.labels, **self._selector()}
        ref = client.create_container(
            image,
            name=f"{self.project_name}_{self._name}_1",
            labels=labels,
            log_driver=self._config.log_driver,
        )
        db.log_event("INFO", f"Created container {ref.name} from image {image}", service_name=self._name)

    def up(self) -> None:
        containers = self.containers()
        if not containers:
            self.create()
            containers = self.containers()
        if not containers:
            raise RuntimeError(f"No container found for service '{self._name}' after create")
        if self._factory.create(self).start_container(containers[0].id):
            db.log_event("INFO", f"Started container {containers[0].name}", service_name=self._name)

    def dependent_services(self) -> list[Relationship]:
        seen: set[str] = set()
        rels: list[Relationship] = []
        # Links may carry an alias: `db:database`.
        for target in [x.split(":", 1)[0] for x in self._config.links] + list(self._config.depends_on):
            if target in seen:
                continue
            seen.add(target)
            rels.append(link(target))
        return rels
