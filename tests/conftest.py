import pytest

from slo import db
from slo.labels import SCOPE, SYSTEM
from slo.models import ContainerRef, ExitStatus, Lookup, ServiceConfig
from slo.service import Service
from slo.settings import Settings


class FakeRuntime:
    """In-memory stand-in for RuntimeClient. Also acts as its own client factory."""

    def __init__(self):
        self.images: set[str] = set()
        self.containers: dict[str, dict] = {}
        self.renames: list[tuple[str, str]] = []
        self.waits: list[tuple] = []
        self.started: list[str] = []
        self.pulled: list[str] = []
        self.image_error: Exception | None = None
        self.inspect_error: Exception | None = None
        self.rename_error: Exception | None = None
        self._n = 0

    def create(self, service):
        return self

    def add_container(self, name, labels, exit_code=0, error=None):
        self._n += 1
        cid = f"{self._n:064x}"
        self.containers[cid] = {
            "name": name,
            "labels": dict(labels),
            "status": "created",
            "exit": ExitStatus(exit_code, error),
        }
        return cid

    def inspect_image(self, ref):
        if self.image_error is not None:
            return Lookup.failed(self.image_error)
        return Lookup.present(ref) if ref in self.images else Lookup.absent()

    def inspect_container(self, container_id):
        if self.inspect_error is not None:
            return Lookup.failed(self.inspect_error)
        c = self.containers.get(container_id)
        if c is None:
            return Lookup.absent()
        return Lookup.present(ContainerRef(id=container_id, name="/" + c["name"]))

    def rename_container(self, old_name, new_name):
        if self.rename_error is not None:
            raise self.rename_error
        self.renames.append((old_name, new_name))
        for c in self.containers.values():
            if c["name"] == old_name:
                c["name"] = new_name
                return
        raise KeyError(old_name)

    def pull_image(self, ref):
        self.pulled.append(ref)
        self.images.add(ref)

    def list_containers(self, labels):
        return [
            ContainerRef(id=cid, name=c["name"])
            for cid, c in self.containers.items()
            if all(c["labels"].get(k) == v for k, v in labels.items())
        ]

    def create_container(self, image, name, labels, log_driver=""):
        cid = self.add_container(name, labels)
        self.containers[cid]["image"] = image
        self.containers[cid]["log_driver"] = log_driver
        return ContainerRef(id=cid, name=name)

    def start_container(self, container_id):
        c = self.containers[container_id]
        if c["status"] == "running":
            return False
        c["status"] = "running"
        self.started.append(container_id)
        return True

    def wait(self, container_id, timeout_s=None, cancel=None):
        self.waits.append((container_id, timeout_s, cancel))
        return self.containers[container_id]["exit"]


class FakeBase:
    """Base service whose containers live in a FakeRuntime, keyed by a label."""

    def __init__(self, name, config, runtime, rels=()):
        self.name = name
        self.config = config
        self.runtime = runtime
        self.rels = list(rels)
        self.calls: list[str] = []
        self.create_error: Exception | None = None
        self.up_error: Exception | None = None
        self.exit_code = 0

    def containers(self):
        return self.runtime.list_containers({"svc": self.name})

    def create(self):
        self.calls.append("create")
        if self.create_error is not None:
            raise self.create_error
        if not self.containers():
            self.runtime.add_container(f"old_{self.name}_1", {"svc": self.name}, exit_code=self.exit_code)

    def up(self):
        self.calls.append("up")
        if self.up_error is not None:
            raise self.up_error
        self.runtime.start_container(self.containers()[0].id)

    def dependent_services(self):
        return list(self.rels)


@pytest.fixture(autouse=True)
def event_log(tmp_path, monkeypatch):
    """Point the event log at an isolated sqlite db."""
    monkeypatch.setattr(db, "settings", Settings(db_path=str(tmp_path / "events.db")))
    return db


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def make_service(runtime):
    def _make(name="web", labels=None, image="img:1", log_driver="", deps=None, rels=(), client_factory=None):
        if labels is None:
            labels = {SCOPE: SYSTEM}
        config = ServiceConfig(image=image, log_driver=log_driver, labels=labels)
        base = FakeBase(name, config, runtime, rels=rels)
        return Service(base, deps or {}, client_factory or runtime)

    return _make
