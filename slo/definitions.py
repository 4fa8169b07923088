from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import DefinitionError
from .labels import parse_labels
from .models import ServiceConfig

SERVICE_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.\-]{0,62}$")


def validate_service_name(name: str) -> None:
    if not SERVICE_NAME_RE.match(name):
        raise ValueError(
            f"Invalid service name '{name}'. Use letters, numbers and -_. starting with a letter or number (max 63 chars)."
        )


class ServiceDefinition(BaseModel):
    image: str = Field("", description="Image reference (name:tag)")
    log_driver: str = Field("", description="Container log driver, e.g. json-file or syslog")
    labels: dict[str, str] = Field(default_factory=dict, description="Mapping or list of key=value strings")
    links: list[str] = Field(default_factory=list, description="service or service:alias")
    depends_on: list[str] = Field(default_factory=list)

    @field_validator("labels", mode="before")
    @classmethod
    def _normalize_labels(cls, v: Any) -> dict[str, str]:
        return parse_labels(v)

    def to_config(self) -> ServiceConfig:
        return ServiceConfig(
            image=self.image,
            log_driver=self.log_driver,
            labels=dict(self.labels),
            links=tuple(self.links),
            depends_on=tuple(self.depends_on),
        )


class DeploymentDefinition(BaseModel):
    services: dict[str, ServiceDefinition]
    dependencies: dict[str, list[str]] = Field(
        default_factory=dict, description="Deployment wide index: service -> services it must follow"
    )

    @field_validator("services")
    @classmethod
    def _check_names(cls, v: dict[str, ServiceDefinition]) -> dict[str, ServiceDefinition]:
        for name in v:
            validate_service_name(name)
        return v


def load_definition(path: str | Path) -> DeploymentDefinition:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise DefinitionError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise DefinitionError(f"{path} is not valid JSON: {e}") from e
    try:
        return DeploymentDefinition.model_validate(raw)
    except ValidationError as e:
        raise DefinitionError(f"{path} is not a valid deployment: {e}") from e
