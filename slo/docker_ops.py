from __future__ import annotations

import threading
import time
from typing import Any, Protocol

import docker
from docker.errors import DockerException, NotFound
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import ReadTimeout, RequestException
from urllib3.exceptions import ReadTimeoutError

from .errors import WaitCancelled, WaitTimeout
from .models import ContainerRef, ExitStatus, Lookup
from .settings import settings

PROJECT_LABEL = "slo.project"
SERVICE_LABEL = "slo.service"


def _is_read_timeout(exc: Exception) -> bool:
    # Over the unix socket adapter a slice timeout surfaces as ConnectionError.
    if isinstance(exc, ReadTimeout):
        return True
    return isinstance(exc, RequestsConnectionError) and any(isinstance(a, ReadTimeoutError) for a in exc.args)


class RuntimeClient:
    """Thin wrapper over the Docker SDK exposing what the lifecycle layer needs.

    Inspection calls never raise: they answer with a `Lookup` so callers can
    tell "confirmed absent" from "could not ask".
    """

    def __init__(self, client: docker.DockerClient):
        self._client = client

    # --- inspection ---

    def inspect_image(self, ref: str) -> Lookup:
        try:
            image = self._client.images.get(ref)
        except NotFound:
            return Lookup.absent()
        except (DockerException, RequestException) as e:
            return Lookup.failed(e)
        if image is None:
            return Lookup.absent()
        return Lookup.present(image)

    def inspect_container(self, container_id: str) -> Lookup:
        try:
            info = self._client.api.inspect_container(container_id)
        except NotFound:
            return Lookup.absent()
        except (DockerException, RequestException) as e:
            return Lookup.failed(e)
        if not info:
            return Lookup.absent()
        return Lookup.present(ContainerRef(id=info["Id"], name=info.get("Name", "")))

    # --- mutation ---

    def rename_container(self, old_name: str, new_name: str) -> None:
        self._client.api.rename(old_name, new_name)

    def pull_image(self, ref: str) -> None:
        # The SDK splits `name:tag` itself and defaults to `latest`.
        self._client.images.pull(ref)

    def list_containers(self, labels: dict[str, str]) -> list[ContainerRef]:
        filters: dict[str, Any] = {"label": [f"{k}={v}" for k, v in labels.items()]}
        containers = self._client.containers.list(all=True, filters=filters)
        return [ContainerRef(id=x.id, name=x.name) for x in containers]

    def create_container(self, image: str, name: str, labels: dict[str, str], log_driver: str = "") -> ContainerRef:
        kwargs: dict[str, Any] = {"name": name, "labels": labels, "detach": True}
        if log_driver:
            kwargs["log_config"] = {"Type": log_driver, "Config": {}}
        container = self._client.containers.create(image, **kwargs)
        return ContainerRef(id=container.id, name=name)

    def start_container(self, container_id: str) -> bool:
        """Start a container unless it is already running. Returns True if started."""
        cont = self._client.containers.get(container_id)
        cont.reload()
        if cont.status == "running":
            return False
        cont.start()
        return True

    # --- completion ---

    def wait(
        self,
        container_id: str,
        timeout_s: float | None = None,
        cancel: threading.Event | None = None,
    ) -> ExitStatus:
        """Block until the container exits.

        With neither a timeout nor a cancel token this is a single blocking
        call. Otherwise the wait is sliced into `settings.wait_poll_s` chunks
        so the deadline and the token are honored between slices.
        """
        if not timeout_s and cancel is None:
            return self._exit_status(self._client.api.wait(container_id))

        deadline = time.monotonic() + timeout_s if timeout_s else None
        poll = max(1, settings.wait_poll_s)
        while True:
            if cancel is not None and cancel.is_set():
                raise WaitCancelled(container_id)
            slice_s: float = poll
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise WaitTimeout(container_id, float(timeout_s or 0))
                slice_s = min(poll, remaining)
            try:
                res = self._client.api.wait(container_id, timeout=slice_s)
            except (ReadTimeout, RequestsConnectionError) as e:
                if _is_read_timeout(e):
                    continue
                raise
            return self._exit_status(res)

    @staticmethod
    def _exit_status(res: dict[str, Any]) -> ExitStatus:
        err = res.get("Error")
        message = err.get("Message") if isinstance(err, dict) else err
        return ExitStatus(exit_code=int(res.get("StatusCode", -1)), error=message or None)


class ClientFactory(Protocol):
    def create(self, service: Any) -> RuntimeClient: ...


class DockerClientFactory:
    """Hands out runtime clients backed by one Docker SDK client from the environment."""

    def __init__(self, client: docker.DockerClient | None = None):
        self._client = client
        self._lock = threading.Lock()

    def _docker(self) -> docker.DockerClient:
        with self._lock:
            if self._client is None:
                self._client = docker.from_env()
            return self._client

    def create(self, service: Any) -> RuntimeClient:
        return RuntimeClient(self._docker())
