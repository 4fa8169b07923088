"""Service Lifecycle Orchestrator (SLO).

Lifecycle layer for container services in a multi-service deployment:
 - dependency inference (explicit index, syslog, cloud-init, network)
 - container create / rename / start sequencing
 - optional synchronous wait on a container's exit code
 - a restart-requested result for services that reload the deployment
"""
from .models import LifecycleResult, Outcome, Relationship, RelationshipKind, ServiceConfig
from .service import Service, ServiceFactory

__all__ = [
    "LifecycleResult",
    "Outcome",
    "Relationship",
    "RelationshipKind",
    "Service",
    "ServiceConfig",
    "ServiceFactory",
]
