from __future__ import annotations


class LifecycleError(Exception):
    """Base class for errors raised by the lifecycle layer itself."""


class ContainerExitError(LifecycleError):
    def __init__(self, exit_code: int) -> None:
        self.exit_code = exit_code
        super().__init__(f"ExitCode {exit_code}")


class ContainerWaitError(LifecycleError):
    """The runtime reported an error while waiting on a container."""


class WaitTimeout(LifecycleError):
    def __init__(self, container_id: str, timeout_s: float) -> None:
        self.container_id = container_id
        self.timeout_s = timeout_s
        super().__init__(f"Container {container_id[:12]} did not exit within {timeout_s:g}s")


class WaitCancelled(LifecycleError):
    def __init__(self, container_id: str) -> None:
        self.container_id = container_id
        super().__init__(f"Wait on container {container_id[:12]} was cancelled")


class DependencyCycleError(LifecycleError):
    def __init__(self, chain: list[str]) -> None:
        self.chain = chain
        super().__init__(f"Circular dependency detected: {' -> '.join(chain)}")


class UnknownServiceError(LifecycleError):
    def __init__(self, name: str, required_by: str | None = None) -> None:
        self.name = name
        self.required_by = required_by
        msg = f"Unknown service '{name}'"
        if required_by:
            msg += f" (required by '{required_by}')"
        super().__init__(msg)


class DefinitionError(LifecycleError):
    """A deployment definition could not be loaded."""
