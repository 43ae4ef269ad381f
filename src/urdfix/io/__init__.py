"""I/O utilities for loading robot descriptions.

This module provides the lxml-backed reader and the lowering pass that
turns a parsed element tree into the typed Document model.
"""

from .reader import load_urdf_tree, parse_urdf_string
from .lowering import load_document, lower, parse_document, to_opaque

__all__ = [
    "load_urdf_tree",
    "parse_urdf_string",
    "load_document",
    "lower",
    "parse_document",
    "to_opaque",
]
