from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RelationshipKind(str, Enum):
    LINK = "link"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Relationship:
    """A dependency edge from a service to the service named `target`."""

    target: str
    kind: RelationshipKind = RelationshipKind.LINK
    optional: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {"target": self.target, "kind": str(self.kind), "optional": self.optional}


def link(target: str, optional: bool = False) -> Relationship:
    return Relationship(target=target, kind=RelationshipKind.LINK, optional=optional)


@dataclass(frozen=True)
class ServiceConfig:
    image: str = ""
    log_driver: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    links: tuple[str, ...] = ()
    depends_on: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContainerRef:
    id: str
    name: str

    @property
    def display_name(self) -> str:
        """Runtime names carry a leading '/'; strip exactly one."""
        return self.name[1:] if self.name.startswith("/") else self.name


class Presence(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    FAILED = "failed"


@dataclass(frozen=True)
class Lookup:
    """Result of asking the runtime for an image or container.

    ABSENT means the runtime confirmed the object does not exist; FAILED means
    the question could not be answered and `error` says why.
    """

    presence: Presence
    value: Any = None
    error: BaseException | None = None

    @classmethod
    def present(cls, value: Any) -> "Lookup":
        return cls(Presence.PRESENT, value=value)

    @classmethod
    def absent(cls) -> "Lookup":
        return cls(Presence.ABSENT)

    @classmethod
    def failed(cls, error: BaseException) -> "Lookup":
        return cls(Presence.FAILED, error=error)

    @property
    def found(self) -> bool:
        return self.presence is Presence.PRESENT


@dataclass(frozen=True)
class ExitStatus:
    exit_code: int
    error: str | None = None


class Outcome(str, Enum):
    SUCCESS = "success"
    RESTART_REQUESTED = "restart_requested"
    FAILURE = "failure"


@dataclass(frozen=True)
class LifecycleResult:
    service: str
    outcome: Outcome
    error: BaseException | None = None

    @classmethod
    def success(cls, service: str) -> "LifecycleResult":
        return cls(service, Outcome.SUCCESS)

    @classmethod
    def restart(cls, service: str) -> "LifecycleResult":
        return cls(service, Outcome.RESTART_REQUESTED)

    @classmethod
    def failure(cls, service: str, error: BaseException) -> "LifecycleResult":
        return cls(service, Outcome.FAILURE, error=error)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def restart_requested(self) -> bool:
        return self.outcome is Outcome.RESTART_REQUESTED

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILURE

    def raise_for_failure(self) -> None:
        if self.error is not None:
            raise self.error

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"service": self.service, "outcome": self.outcome.value}
        if self.error is not None:
            out["error"] = f"{type(self.error).__name__}: {self.error}"
        return out
