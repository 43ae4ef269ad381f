"""Built-in lint rules.

Each rule is a plain function of ``(document, graph)`` wrapped in a
``LintRule`` value. ``DEFAULT_RULES`` lists them explicitly; a new rule is
added by appending to that tuple (or passing a custom tuple to the engine),
never by editing an existing rule.
"""

import re
from collections import Counter, defaultdict
from typing import Callable, Iterable, Iterator, Tuple

from flax import struct

from urdfix.core import (
    JOINT_TYPES,
    ROBOT_PATH,
    Diagnostic,
    Document,
    OpaqueElement,
    OpaqueText,
    Severity,
    element_path,
)
from urdfix.core.walk import iter_opaque
from urdfix.graph import KinematicGraph, find_cycles, find_dangling, find_multi_parent, find_roots

RuleCheck = Callable[[Document, KinematicGraph], Iterable[Diagnostic]]

VALID_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
LIMITED_JOINT_TYPES = ("revolute", "prismatic")


@struct.dataclass
class LintRule:
    """A named, pure check over a document and its kinematic graph."""
    code: str = struct.field(pytree_node=False)
    description: str = struct.field(pytree_node=False)
    check: RuleCheck = struct.field(pytree_node=False)

    def __call__(self, document: Document, graph: KinematicGraph) -> Tuple[Diagnostic, ...]:
        return tuple(self.check(document, graph))


def _named(document: Document):
    """``(kind, index, element)`` for every link, joint and material."""
    for kind, elements in (
        ("link", document.links),
        ("joint", document.joints),
        ("material", document.materials),
    ):
        for index, element in enumerate(elements):
            yield kind, index, element


def _link_paths(document: Document):
    """Path of the first link carrying each name."""
    paths = {}
    for index, link in enumerate(document.links):
        if link.name is not None and link.name not in paths:
            paths[link.name] = element_path("link", link.name, index)
    return paths


def check_duplicate_names(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    for kind, elements in (
        ("link", document.links),
        ("joint", document.joints),
        ("material", document.materials),
    ):
        counts = Counter(e.name for e in elements if e.name is not None)
        seen: Counter = Counter()
        for index, element in enumerate(elements):
            if element.name is None or counts[element.name] < 2:
                continue
            seen[element.name] += 1
            if seen[element.name] == 1:
                continue
            yield Diagnostic(
                severity=Severity.ERROR,
                code="DuplicateElementName",
                message=(
                    f"Duplicate {kind} '{element.name}' "
                    f"(occurrence {seen[element.name]} of {counts[element.name]})"
                ),
                path=element_path(kind, element.name, index),
            )


def check_dangling_references(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    for ref in find_dangling(graph):
        label = ref.joint if ref.joint is not None else f"#{ref.index}"
        if ref.link is None:
            message = f"Joint '{label}' does not specify a {ref.role} link"
        else:
            message = f"Joint '{label}' references missing {ref.role} link '{ref.link}'"
        yield Diagnostic(
            severity=Severity.ERROR,
            code="DanglingReference",
            message=message,
            path=f"{element_path('joint', ref.joint, ref.index)}/{ref.role}",
        )


def check_cycles(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    for joints in find_cycles(graph):
        yield Diagnostic(
            severity=Severity.ERROR,
            code="CyclicKinematics",
            message=f"Kinematic cycle through joints: {', '.join(joints)}",
            path=f"{ROBOT_PATH}/joint[{joints[0]}]",
        )


def check_multiple_roots(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    roots = find_roots(graph)
    if len(roots) > 1:
        yield Diagnostic(
            severity=Severity.WARNING,
            code="MultipleRoots",
            message=f"Expected exactly 1 root link, found {len(roots)}: {', '.join(roots)}",
            path=ROBOT_PATH,
        )


def check_orphan_links(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    if len(graph.nodes) < 2:
        return
    referenced = set()
    for ref in graph.joints:
        referenced.update((ref.parent, ref.child))
    for name, path in _link_paths(document).items():
        if name not in referenced:
            yield Diagnostic(
                severity=Severity.WARNING,
                code="OrphanLink",
                message=f"Link '{name}' is not connected to any joint",
                path=path,
            )


def check_missing_attributes(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    for issue in document.issues:
        if issue.kind == "missing":
            yield Diagnostic(
                severity=Severity.ERROR,
                code="MissingRequiredAttribute",
                message=issue.message,
                path=issue.path,
            )


def check_malformed_attributes(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    for issue in document.issues:
        if issue.kind != "malformed":
            continue
        yield Diagnostic(
            severity=Severity.ERROR,
            code="MalformedAttribute",
            message=issue.message,
            path=issue.path,
        )


def check_whitespace_only(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    for path, node in iter_opaque(document):
        if isinstance(node, OpaqueElement) and node.is_whitespace_only:
            message = f"<{node.tag}> contains only whitespace"
        elif isinstance(node, OpaqueText) and not node.text.strip():
            message = "Whitespace-only text node"
        else:
            continue
        yield Diagnostic(
            severity=Severity.INFO,
            code="RedundantWhitespaceOnly",
            message=message,
            path=path,
        )


def check_multiple_parents(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    paths = _link_paths(document)
    for link, joints in find_multi_parent(graph):
        yield Diagnostic(
            severity=Severity.ERROR,
            code="MultipleParents",
            message=f"Link '{link}' is the child of {len(joints)} joints: {', '.join(joints)}",
            path=paths[link],
        )


def check_joint_types(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    for index, joint in enumerate(document.joints):
        if joint.type is not None and joint.type not in JOINT_TYPES:
            yield Diagnostic(
                severity=Severity.ERROR,
                code="InvalidJointType",
                message=f"Joint type '{joint.type}' is not one of: {', '.join(JOINT_TYPES)}",
                path=element_path("joint", joint.name, index),
            )


def check_joint_limits(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    for index, joint in enumerate(document.joints):
        if joint.type in LIMITED_JOINT_TYPES and joint.limit is None:
            yield Diagnostic(
                severity=Severity.WARNING,
                code="MissingJointLimit",
                message=f"Joint of type '{joint.type}' is missing limit specification",
                path=element_path("joint", joint.name, index),
            )


def check_inertials(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    for index, link in enumerate(document.links):
        has_geometry = any(e.geometry is not None for e in link.visuals + link.collisions)
        if has_geometry and link.inertial is None:
            yield Diagnostic(
                severity=Severity.INFO,
                code="MissingInertial",
                message="Link has geometry but no inertial properties",
                path=element_path("link", link.name, index),
            )


def check_unused_materials(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    used = {
        visual.material.name
        for link in document.links
        for visual in link.visuals
        if visual.material is not None
    }
    reported = set()
    for index, material in enumerate(document.materials):
        if material.name is None or material.name in used or material.name in reported:
            continue
        reported.add(material.name)
        yield Diagnostic(
            severity=Severity.INFO,
            code="UnusedMaterial",
            message=f"Material '{material.name}' is never used",
            path=element_path("material", material.name, index),
        )


def check_naming(document: Document, graph: KinematicGraph) -> Iterator[Diagnostic]:
    reported = defaultdict(set)
    for kind, index, element in _named(document):
        if kind == "material" or element.name is None or element.name in reported[kind]:
            continue
        if not VALID_NAME.fullmatch(element.name):
            reported[kind].add(element.name)
            yield Diagnostic(
                severity=Severity.WARNING,
                code="NamingConvention",
                message=f"{kind.capitalize()} name '{element.name}' doesn't follow naming conventions",
                path=element_path(kind, element.name, index),
            )


DEFAULT_RULES: Tuple[LintRule, ...] = (
    LintRule("DuplicateElementName", "Links, joints and materials have unique names", check_duplicate_names),
    LintRule("DanglingReference", "Joint parent and child name existing links", check_dangling_references),
    LintRule("CyclicKinematics", "The kinematic graph is acyclic", check_cycles),
    LintRule("MultipleRoots", "The kinematic graph has a single root link", check_multiple_roots),
    LintRule("OrphanLink", "Every link takes part in a joint", check_orphan_links),
    LintRule("MissingRequiredAttribute", "Required attributes and elements are present", check_missing_attributes),
    LintRule("MalformedAttribute", "Attribute values parse as their declared type", check_malformed_attributes),
    LintRule("RedundantWhitespaceOnly", "No whitespace-only text content", check_whitespace_only),
    LintRule("MultipleParents", "Each link is the child of at most one joint", check_multiple_parents),
    LintRule("InvalidJointType", "Joint types are known URDF types", check_joint_types),
    LintRule("MissingJointLimit", "Revolute and prismatic joints declare limits", check_joint_limits),
    LintRule("MissingInertial", "Links with geometry declare inertial properties", check_inertials),
    LintRule("UnusedMaterial", "Top-level materials are referenced", check_unused_materials),
    LintRule("NamingConvention", "Link and joint names are identifiers", check_naming),
)
