"""Canonical URDF formatter.

Renders a Document as text in one canonical layout: an XML declaration,
the preamble comments and processing instructions, then ``<robot>`` with
its materials, links and joints grouped in that order, then the postamble.
Inside each element, typed children come in schema order and opaque
fragments are re-inserted at their anchored positions. Two-space
indentation, double-quoted attributes, childless typed elements self-closed,
exactly one trailing newline.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .core import (
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
    Joint,
    Limit,
    Link,
    Mass,
    Material,
    Mesh,
    Mimic,
    OpaqueGeometry,
    OpaqueNode,
    OpaqueText,
    Origin,
    ProcessingInstruction,
    Sphere,
    Texture,
    Visual,
)
from .io import parse_document

logger = logging.getLogger(__name__)

INDENT = "  "
XML_DECLARATION = '<?xml version="1.0"?>'

_ATTRIBUTE_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("\t", "&#9;"),
    ("\n", "&#10;"),
    ("\r", "&#13;"),
)

Block = List[str]


def escape_attribute(value: str) -> str:
    for raw, escaped in _ATTRIBUTE_ESCAPES:
        value = value.replace(raw, escaped)
    return value


def escape_text(value: str) -> str:
    return (
        value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace("\r", "&#13;")
    )


def format_float(value: float) -> str:
    """Shortest positional representation that parses back to ``value``."""
    return np.format_float_positional(value, trim="-")


def _vector(values: Optional[Sequence[float]]) -> Optional[str]:
    if values is None:
        return None
    return " ".join(format_float(v) for v in values)


def _number(value: Optional[float]) -> Optional[str]:
    return None if value is None else format_float(value)


def _attributes(known, extras) -> str:
    pairs = [(key, value) for key, value in known if value is not None]
    pairs.extend(extras)
    return "".join(f' {key}="{escape_attribute(value)}"' for key, value in pairs)


def _element(tag: str, attributes: str, children: Sequence[Block], depth: int) -> Block:
    pad = INDENT * depth
    if not children:
        return [f"{pad}<{tag}{attributes}/>"]
    lines = [f"{pad}<{tag}{attributes}>"]
    for block in children:
        lines.extend(block)
    lines.append(f"{pad}</{tag}>")
    return lines


def _place(typed: List[Block], extensions: Tuple[Anchored, ...], depth: int) -> List[Block]:
    """Insert anchored fragments among typed children.

    Fragments go in ascending anchor order, each at its anchor or at the
    end when fewer children precede it.
    """
    blocks = list(typed)
    for anchored in sorted(extensions, key=lambda a: a.position):
        blocks.insert(min(anchored.position, len(blocks)), _opaque(anchored.node, depth))
    return blocks


# Opaque content

def _opaque(node: OpaqueNode, depth: int, canonical: bool = False) -> Block:
    pad = INDENT * depth
    if isinstance(node, Comment):
        return [f"{pad}<!--{node.text}-->"]
    if isinstance(node, OpaqueText):
        return [f"{pad}{escape_text(node.text)}"]
    if isinstance(node, ProcessingInstruction):
        if node.text:
            return [f"{pad}<?{node.target} {node.text}?>"]
        return [f"{pad}<?{node.target}?>"]
    attributes = _attributes((), node.attributes)
    if node.children:
        return _element(
            node.tag,
            attributes,
            [_opaque(child, depth + 1, canonical) for child in node.children],
            depth,
        )
    if node.text is not None:
        return [f"{pad}<{node.tag}{attributes}>{escape_text(node.text)}</{node.tag}>"]
    if node.self_closing or canonical:
        return [f"{pad}<{node.tag}{attributes}/>"]
    return [f"{pad}<{node.tag}{attributes}></{node.tag}>"]


def serialize_opaque(node: OpaqueNode, canonical: bool = False) -> str:
    """Serialize an opaque node on its own.

    With ``canonical`` set, empty elements are always self-closed, so that
    ``<a></a>`` and ``<a/>`` serialize identically.
    """
    return "\n".join(_opaque(node, 0, canonical))


# Typed elements

def _origin(origin: Optional[Origin], depth: int) -> List[Block]:
    if origin is None:
        return []
    attributes = _attributes(
        (("xyz", _vector(origin.xyz)), ("rpy", _vector(origin.rpy))),
        origin.extra_attributes,
    )
    return [_element("origin", attributes, (), depth)]


def _leaf(tag: str, known, extras, depth: int) -> List[Block]:
    return [_element(tag, _attributes(known, extras), (), depth)]


def _geometry(geometry: Optional[Geometry], depth: int) -> List[Block]:
    if geometry is None:
        return []
    if isinstance(geometry, OpaqueGeometry):
        return [_opaque(geometry.node, depth)]
    if isinstance(geometry, Box):
        shape = _leaf("box", (("size", _vector(geometry.size)),), geometry.extra_attributes, depth + 1)
    elif isinstance(geometry, Cylinder):
        shape = _leaf(
            "cylinder",
            (("radius", _number(geometry.radius)), ("length", _number(geometry.length))),
            geometry.extra_attributes,
            depth + 1,
        )
    elif isinstance(geometry, Sphere):
        shape = _leaf("sphere", (("radius", _number(geometry.radius)),), geometry.extra_attributes, depth + 1)
    elif isinstance(geometry, Mesh):
        shape = _leaf(
            "mesh",
            (("filename", geometry.filename), ("scale", _vector(geometry.scale))),
            geometry.extra_attributes,
            depth + 1,
        )
    else:
        raise TypeError(f"Unknown geometry variant: {type(geometry).__name__}")
    return [_element("geometry", "", shape, depth)]


def _material(material: Optional[Material], depth: int) -> List[Block]:
    if material is None:
        return []
    typed: List[Block] = []
    color: Optional[Color] = material.color
    texture: Optional[Texture] = material.texture
    if color is not None:
        typed += _leaf("color", (("rgba", _vector(color.rgba)),), color.extra_attributes, depth + 1)
    if texture is not None:
        typed += _leaf("texture", (("filename", texture.filename),), texture.extra_attributes, depth + 1)
    attributes = _attributes((("name", material.name),), material.extra_attributes)
    return [_element("material", attributes, _place(typed, material.extensions, depth + 1), depth)]


def _visual(element, tag: str, depth: int) -> Block:
    typed = _origin(element.origin, depth + 1) + _geometry(element.geometry, depth + 1)
    if isinstance(element, Visual):
        typed += _material(element.material, depth + 1)
    attributes = _attributes((("name", element.name),), element.extra_attributes)
    return _element(tag, attributes, _place(typed, element.extensions, depth + 1), depth)


def _inertial(inertial: Optional[Inertial], depth: int) -> List[Block]:
    if inertial is None:
        return []
    typed = _origin(inertial.origin, depth + 1)
    mass: Optional[Mass] = inertial.mass
    inertia: Optional[Inertia] = inertial.inertia
    if mass is not None:
        typed += _leaf("mass", (("value", _number(mass.value)),), mass.extra_attributes, depth + 1)
    if inertia is not None:
        typed += _leaf(
            "inertia",
            tuple(
                (key, _number(getattr(inertia, key)))
                for key in ("ixx", "ixy", "ixz", "iyy", "iyz", "izz")
            ),
            inertia.extra_attributes,
            depth + 1,
        )
    attributes = _attributes((), inertial.extra_attributes)
    return [_element("inertial", attributes, _place(typed, inertial.extensions, depth + 1), depth)]


def _link(link: Link, depth: int) -> Block:
    typed = _inertial(link.inertial, depth + 1)
    typed += [_visual(visual, "visual", depth + 1) for visual in link.visuals]
    collisions: Tuple[Collision, ...] = link.collisions
    typed += [_visual(collision, "collision", depth + 1) for collision in collisions]
    attributes = _attributes((("name", link.name),), link.extra_attributes)
    return _element("link", attributes, _place(typed, link.extensions, depth + 1), depth)


def _joint(joint: Joint, depth: int) -> Block:
    inner = depth + 1
    typed: List[Block] = []
    if joint.parent is not None or joint.parent_attributes:
        typed += _leaf("parent", (("link", joint.parent),), joint.parent_attributes, inner)
    if joint.child is not None or joint.child_attributes:
        typed += _leaf("child", (("link", joint.child),), joint.child_attributes, inner)
    typed += _origin(joint.origin, inner)
    axis: Optional[Axis] = joint.axis
    if axis is not None:
        typed += _leaf("axis", (("xyz", _vector(axis.xyz)),), axis.extra_attributes, inner)
    limit: Optional[Limit] = joint.limit
    if limit is not None:
        typed += _leaf(
            "limit",
            tuple((key, _number(getattr(limit, key))) for key in ("lower", "upper", "effort", "velocity")),
            limit.extra_attributes,
            inner,
        )
    dynamics: Optional[Dynamics] = joint.dynamics
    if dynamics is not None:
        typed += _leaf(
            "dynamics",
            (("damping", _number(dynamics.damping)), ("friction", _number(dynamics.friction))),
            dynamics.extra_attributes,
            inner,
        )
    mimic: Optional[Mimic] = joint.mimic
    if mimic is not None:
        typed += _leaf(
            "mimic",
            (
                ("joint", mimic.joint),
                ("multiplier", _number(mimic.multiplier)),
                ("offset", _number(mimic.offset)),
            ),
            mimic.extra_attributes,
            inner,
        )
    attributes = _attributes((("name", joint.name), ("type", joint.type)), joint.extra_attributes)
    return _element("joint", attributes, _place(typed, joint.extensions, inner), depth)


def format_document(document: Document) -> str:
    """Render a Document as canonical URDF text.

    Args:
        document: The document to render.

    Returns:
        str: The formatted text, ending in exactly one newline.
    """
    lines = [XML_DECLARATION]
    for node in document.preamble:
        lines.extend(_opaque(node, 0))

    typed: List[Block] = []
    for material in document.materials:
        typed += _material(material, 1)
    typed += [_link(link, 1) for link in document.links]
    typed += [_joint(joint, 1) for joint in document.joints]

    attributes = _attributes((("name", document.name),), document.extra_attributes)
    lines.extend(_element("robot", attributes, _place(typed, document.extensions, 1), 0))
    for node in document.postamble:
        lines.extend(_opaque(node, 0))
    return "\n".join(lines) + "\n"


def format_text(content, source: Optional[str] = None) -> str:
    """Parse, lower and format URDF text.

    Raises:
        UrdfParseError: If the text is not a well-formed URDF document.
    """
    document = parse_document(content, source=source)
    logger.debug("Formatting robot '%s'", document.name)
    return format_document(document)
