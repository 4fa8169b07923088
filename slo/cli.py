from __future__ import annotations

import argparse
import json
import sys

from docker.errors import DockerException

from . import db
from .definitions import load_definition
from .docker_ops import ClientFactory
from .errors import LifecycleError
from .models import Outcome
from .project import Project
from .settings import settings

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_RESTART_BUDGET = 3


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _load_project(path: str, client_factory: ClientFactory | None, project_name: str | None) -> Project:
    return Project.from_definition(load_definition(path), client_factory, project_name)


def main(argv: list[str] | None = None, client_factory: ClientFactory | None = None) -> int:
    p = argparse.ArgumentParser(description="Service lifecycle orchestrator")
    p.add_argument("-f", "--file", default="deployment.json", help="Deployment definition (JSON)")
    p.add_argument("-p", "--project-name", default=None, help=f"Project name (default: {settings.project_name})")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_deps = sub.add_parser("deps", help="Show the relationships of a service")
    s_deps.add_argument("service")

    s_order = sub.add_parser("order", help="Show the start order")
    s_order.add_argument("services", nargs="*")

    s_create = sub.add_parser("create", help="Create and name containers without starting them")
    s_create.add_argument("services", nargs="*")

    s_up = sub.add_parser("up", help="Create, name and start services")
    s_up.add_argument("services", nargs="*")
    s_up.add_argument("--timeout", type=float, default=None, help="Max seconds to wait on a non-detached service")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--service", default=None)

    args = p.parse_args(argv)

    if args.cmd == "events":
        _print(db.latest_events(limit=args.limit, service_name=args.service))
        return EXIT_OK

    try:
        project = _load_project(args.file, client_factory, args.project_name)

        if args.cmd == "deps":
            _print([r.as_dict() for r in project.get(args.service).dependent_services()])
            return EXIT_OK

        if args.cmd == "order":
            _print(project.order(args.services or None))
            return EXIT_OK

        if args.cmd == "create":
            result = project.create(args.services or None)
            _print(result.as_dict())
            return EXIT_OK if result.outcome is Outcome.SUCCESS else EXIT_FAILED

        if args.cmd == "up":
            # A restart request means the deployment must be reloaded from
            # disk and brought up again.
            reloaded: set[str] = set()
            for attempt in range(settings.max_restarts + 1):
                if attempt:
                    project = _load_project(args.file, client_factory, args.project_name)
                result = project.up(args.services or None, timeout_s=args.timeout, reloaded=reloaded)
                _print(result.as_dict())
                if result.outcome is not Outcome.RESTART_REQUESTED:
                    return EXIT_OK if result.outcome is Outcome.SUCCESS else EXIT_FAILED
                db.log_event("INFO", f"Reloading deployment (attempt {attempt + 1})", service_name=result.stopped_at)
                reloaded.add(result.stopped_at or "")
            _print({"error": f"Restart requested more than {settings.max_restarts} times"})
            return EXIT_RESTART_BUDGET
    except (LifecycleError, DockerException) as e:
        _print({"error": str(e)})
        return EXIT_FAILED

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
