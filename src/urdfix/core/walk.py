"""Traversal helpers over the opaque content of a Document.

Opaque fragments live in many containers (the robot, links, joints,
visuals, inline materials, unknown geometries). These helpers visit or
rewrite all of them in one place so lint rules and fix passes do not need to
know where fragments can appear.
"""

from typing import Callable, Iterator, Optional, Tuple

from .document import (
    Anchored,
    Collision,
    Document,
    Link,
    Material,
    OpaqueElement,
    OpaqueGeometry,
    OpaqueNode,
    OpaqueText,
    ProcessingInstruction,
    Visual,
)
from .records import ROBOT_PATH, element_path

NodeFn = Callable[[OpaqueNode, str], Optional[OpaqueNode]]


def node_label(node: OpaqueNode) -> str:
    if isinstance(node, OpaqueElement):
        return node.tag
    if isinstance(node, OpaqueText):
        return "#text"
    if isinstance(node, ProcessingInstruction):
        return "#pi"
    return "#comment"


def containers(document: Document) -> Iterator[Tuple[str, Tuple[Anchored, ...]]]:
    """Yield ``(path, extensions)`` for every container in document order.

    An unknown geometry is yielded as a one-fragment container so that its
    payload is visited like any other opaque content.
    """
    yield ROBOT_PATH, document.extensions
    for index, material in enumerate(document.materials):
        yield element_path("material", material.name, index), material.extensions
    for index, link in enumerate(document.links):
        path = element_path("link", link.name, index)
        yield path, link.extensions
        if link.inertial is not None:
            yield f"{path}/inertial", link.inertial.extensions
        for kind, elements in (("visual", link.visuals), ("collision", link.collisions)):
            for position, element in enumerate(elements):
                child_path = f"{path}/{kind}[{position}]"
                yield child_path, element.extensions
                if isinstance(element.geometry, OpaqueGeometry):
                    yield child_path, (Anchored(0, element.geometry.node),)
                material = getattr(element, "material", None)
                if material is not None:
                    yield f"{child_path}/material", material.extensions
    for index, joint in enumerate(document.joints):
        yield element_path("joint", joint.name, index), joint.extensions


def iter_opaque(document: Document) -> Iterator[Tuple[str, OpaqueNode]]:
    """Yield ``(path, node)`` for every opaque node, depth first."""
    for path, extensions in containers(document):
        stack = [(path, anchored.node) for anchored in reversed(extensions)]
        while stack:
            parent, node = stack.pop()
            node_path = f"{parent}/{node_label(node)}"
            yield node_path, node
            if isinstance(node, OpaqueElement):
                stack.extend((node_path, child) for child in reversed(node.children))


def _map_node(node: OpaqueNode, parent: str, fn: NodeFn) -> Optional[OpaqueNode]:
    path = f"{parent}/{node_label(node)}"
    if isinstance(node, OpaqueElement) and node.children:
        children = []
        for child in node.children:
            mapped = _map_node(child, path, fn)
            if mapped is not None:
                children.append(mapped)
        node = node.replace(children=tuple(children))
    return fn(node, path)


def _map_anchored(extensions: Tuple[Anchored, ...], path: str, fn: NodeFn) -> Tuple[Anchored, ...]:
    result = []
    for anchored in extensions:
        mapped = _map_node(anchored.node, path, fn)
        if mapped is not None:
            result.append(anchored.replace(node=mapped))
    return tuple(result)


def _map_geometry(geometry, path: str, fn: NodeFn):
    if not isinstance(geometry, OpaqueGeometry):
        return geometry
    mapped = _map_node(geometry.node, path, fn)
    if isinstance(mapped, OpaqueElement):
        return geometry.replace(node=mapped)
    return geometry


def _map_material(material: Optional[Material], path: str, fn: NodeFn) -> Optional[Material]:
    if material is None:
        return None
    return material.replace(extensions=_map_anchored(material.extensions, path, fn))


def _map_visual(element, path: str, fn: NodeFn):
    updates = {
        "extensions": _map_anchored(element.extensions, path, fn),
        "geometry": _map_geometry(element.geometry, path, fn),
    }
    if isinstance(element, Visual):
        updates["material"] = _map_material(element.material, f"{path}/material", fn)
    return element.replace(**updates)


def _map_link(link: Link, path: str, fn: NodeFn) -> Link:
    inertial = link.inertial
    if inertial is not None:
        inertial = inertial.replace(
            extensions=_map_anchored(inertial.extensions, f"{path}/inertial", fn)
        )
    visuals = tuple(
        _map_visual(visual, f"{path}/visual[{i}]", fn) for i, visual in enumerate(link.visuals)
    )
    collisions: Tuple[Collision, ...] = tuple(
        _map_visual(collision, f"{path}/collision[{i}]", fn)
        for i, collision in enumerate(link.collisions)
    )
    return link.replace(
        inertial=inertial,
        visuals=visuals,
        collisions=collisions,
        extensions=_map_anchored(link.extensions, path, fn),
    )


def map_opaque(document: Document, fn: NodeFn) -> Document:
    """Rewrite every opaque node bottom-up.

    ``fn(node, path)`` returns the replacement node, or None to drop it.
    Children are rewritten before their parent sees them. The root element
    of an unknown geometry cannot be dropped.
    """
    return document.replace(
        extensions=_map_anchored(document.extensions, ROBOT_PATH, fn),
        materials=tuple(
            _map_material(material, element_path("material", material.name, i), fn)
            for i, material in enumerate(document.materials)
        ),
        links=tuple(
            _map_link(link, element_path("link", link.name, i), fn)
            for i, link in enumerate(document.links)
        ),
        joints=tuple(
            joint.replace(
                extensions=_map_anchored(joint.extensions, element_path("joint", joint.name, i), fn)
            )
            for i, joint in enumerate(document.joints)
        ),
    )
