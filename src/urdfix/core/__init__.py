"""Core data structures for urdfix.

This module provides the immutable document model and the structured
records (diagnostics, fix log entries, diff entries) exchanged between the
pipeline stages.
"""

from .document import (
    Anchored,
    Axis,
    Box,
    Collision,
    Color,
    Comment,
    Cylinder,
    Document,
    Dynamics,
    Geometry,
    Inertia,
    Inertial,
    JOINT_TYPES,
    Joint,
    Limit,
    Link,
    LoweringIssue,
    Mass,
    Material,
    Mesh,
    Mimic,
    OpaqueElement,
    OpaqueGeometry,
    OpaqueNode,
    OpaqueText,
    Origin,
    ProcessingInstruction,
    Sphere,
    Texture,
    Visual,
    geometry_kind,
)
from .records import (
    ROBOT_PATH,
    DiffEntry,
    DiffKind,
    Diagnostic,
    FixEntry,
    Severity,
    element_path,
    sort_diagnostics,
)

__all__ = [
    "Anchored",
    "Axis",
    "Box",
    "Collision",
    "Color",
    "Comment",
    "Cylinder",
    "Document",
    "Dynamics",
    "Geometry",
    "Inertia",
    "Inertial",
    "JOINT_TYPES",
    "Joint",
    "Limit",
    "Link",
    "LoweringIssue",
    "Mass",
    "Material",
    "Mesh",
    "Mimic",
    "OpaqueElement",
    "OpaqueGeometry",
    "OpaqueNode",
    "OpaqueText",
    "Origin",
    "ProcessingInstruction",
    "Sphere",
    "Texture",
    "Visual",
    "geometry_kind",
    "ROBOT_PATH",
    "DiffEntry",
    "DiffKind",
    "Diagnostic",
    "FixEntry",
    "Severity",
    "element_path",
    "sort_diagnostics",
]
