"""
urdfix: lint, fix, format and diff URDF robot descriptions.

This library lowers URDF XML into an immutable typed model, validates its
kinematic structure, repairs what can be repaired safely, renders it in a
canonical layout and computes structural differences between documents.
"""

import jax
jax.config.update("jax_enable_x64", True)

# Import core modules
from . import transforms
from . import core
from . import io
from . import graph
from . import lint
from . import fix
from . import formatter
from . import diff
from . import analysis
from .config import DEFAULT_CONFIG, UrdfixConfig
from .exceptions import ConfigError, UnknownPassError, UrdfixError, UrdfParseError

__version__ = "0.1.0"
__all__ = [
    "transforms",
    "core",
    "io",
    "graph",
    "lint",
    "fix",
    "formatter",
    "diff",
    "analysis",
    "DEFAULT_CONFIG",
    "UrdfixConfig",
    "ConfigError",
    "UnknownPassError",
    "UrdfixError",
    "UrdfParseError",
]
