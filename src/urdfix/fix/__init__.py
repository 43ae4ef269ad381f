"""Fix pipeline and the built-in fix passes."""

from .passes import DEFAULT_PASSES, PASSES, FixPass, PassResult, completeness
from .pipeline import FixResult, default_passes, fix, resolve_passes

__all__ = [
    "DEFAULT_PASSES",
    "PASSES",
    "FixPass",
    "FixResult",
    "PassResult",
    "completeness",
    "default_passes",
    "fix",
    "resolve_passes",
]
