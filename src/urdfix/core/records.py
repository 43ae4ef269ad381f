"""Structured records produced by the lint, fix and diff stages.

These are the shapes the core guarantees to its callers; rendering them
(console, JSON) is left to the caller. Paths address nodes XPath-style:
``/robot/link[base_link]``, ``/robot/joint[elbow]/child``; an element
without a usable name is addressed by position, ``/robot/link[#3]``.
"""

import enum
from typing import Any, Dict, Optional, Tuple

from flax import struct

ROBOT_PATH = "/robot"


def element_path(kind: str, name: Optional[str], index: int, parent: str = ROBOT_PATH) -> str:
    """Path of a named element, falling back to its index when unnamed."""
    key = name if name else f"#{index}"
    return f"{parent}/{kind}[{key}]"


class Severity(enum.IntEnum):
    INFO = 0
    WARNING = 1
    ERROR = 2

    def __str__(self) -> str:
        return self.name.lower()


@struct.dataclass
class Diagnostic:
    """A detected issue: severity, rule code, location and a human message."""
    severity: Severity = struct.field(pytree_node=False)
    code: str = struct.field(pytree_node=False)
    message: str = struct.field(pytree_node=False)
    path: str = struct.field(pytree_node=False, default=ROBOT_PATH)

    def sort_key(self) -> Tuple[int, str, str, str]:
        return (-int(self.severity), self.path, self.code, self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": str(self.severity),
            "code": self.code,
            "path": self.path,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"{self.severity}[{self.code}] {self.path}: {self.message}"


def sort_diagnostics(diagnostics) -> Tuple[Diagnostic, ...]:
    """Deterministic presentation order: severity descending, then path and code."""
    return tuple(sorted(diagnostics, key=Diagnostic.sort_key))


@struct.dataclass
class FixEntry:
    """One change (or deliberate non-change) made by a fix pass."""
    pass_name: str = struct.field(pytree_node=False)
    path: str = struct.field(pytree_node=False)
    description: str = struct.field(pytree_node=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"pass": self.pass_name, "path": self.path, "description": self.description}

    def __str__(self) -> str:
        return f"{self.pass_name}: {self.path}: {self.description}"


class DiffKind(enum.Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@struct.dataclass
class DiffEntry:
    """A single field-precise difference between two documents."""
    kind: DiffKind = struct.field(pytree_node=False)
    path: str = struct.field(pytree_node=False)
    before: Any = struct.field(pytree_node=False, default=None)
    after: Any = struct.field(pytree_node=False, default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "path": self.path,
            "before": _describe(self.before),
            "after": _describe(self.after),
        }

    def __str__(self) -> str:
        if self.kind is DiffKind.ADDED:
            return f"+ {self.path}: {_describe(self.after)}"
        if self.kind is DiffKind.REMOVED:
            return f"- {self.path}: {_describe(self.before)}"
        return f"~ {self.path}: {_describe(self.before)} -> {_describe(self.after)}"


def _describe(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, tuple) and all(isinstance(v, (int, float)) for v in value):
        return list(value)
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return f"{type(value).__name__.lower()} '{name}'"
    return type(value).__name__.lower()
