"""Label keys understood by the lifecycle layer and their typed view.

Raw labels are plain strings compared case-sensitively against literal
values. That comparison happens here and nowhere else.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

SCOPE = "io.rancher.os.scope"
CREATE_ONLY = "io.rancher.os.createonly"
DETACH = "io.rancher.os.detach"
RELOAD_CONFIG = "io.rancher.os.reloadconfig"

SYSTEM = "system"

SYSLOG_DRIVER = "syslog"


def parse_labels(raw: Mapping[str, object] | Iterable[str] | None) -> dict[str, str]:
    """Normalize a label mapping or a list of ``key=value`` strings.

    A list entry without ``=`` and a mapping value of None both map the key
    to an empty string. Anything else that is not a string is rejected, so
    `true` and `"true"` can never be confused.
    """
    if raw is None:
        return {}
    if isinstance(raw, (str, bytes)):
        raise ValueError("labels must be a mapping or a list of key=value strings, not a single string")
    if isinstance(raw, Mapping):
        out: dict[str, str] = {}
        for k, v in raw.items():
            if v is not None and not isinstance(v, str):
                raise ValueError(f"label '{k}' must be a string, got {type(v).__name__} {v!r}")
            out[str(k)] = v or ""
        return out
    out = {}
    for item in raw:
        if not isinstance(item, str):
            raise ValueError(f"label entry must be a key=value string, got {type(item).__name__} {item!r}")
        key, _, value = item.partition("=")
        out[key] = value
    return out


@dataclass(frozen=True)
class ServicePolicy:
    user_scoped: bool
    create_only: bool
    # None when the label is unset; only an explicit "false" means synchronous.
    detach: bool | None
    reload_config: bool

    @property
    def wait_for_exit(self) -> bool:
        return self.detach is False

    @classmethod
    def from_labels(cls, labels: Mapping[str, str]) -> "ServicePolicy":
        detach_raw = labels.get(DETACH)
        if detach_raw == "false":
            detach: bool | None = False
        elif detach_raw == "true":
            detach = True
        else:
            detach = None
        return cls(
            user_scoped=labels.get(SCOPE) != SYSTEM,
            create_only=labels.get(CREATE_ONLY) == "true",
            detach=detach,
            reload_config=labels.get(RELOAD_CONFIG) == "true",
        )
