"""Lowering of a parsed URDF element tree into the typed Document model.

Recognized elements become typed fields. Everything else (unknown elements,
comments, stray text, unknown attributes, repeated singleton children) is
kept as opaque content anchored at its position among the parent's child
nodes, so that formatting an unfixed Document loses nothing meaningful.

Lowering never aborts on structural problems: a missing or malformed
attribute yields an incomplete value plus a LoweringIssue, which the lint
rules report later.
"""

import logging
from typing import Callable, List, Optional, Tuple, Union

from lxml import etree

from urdfix.core.document import (
    Anchored,
    Attributes,
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
)
from urdfix.core.records import ROBOT_PATH, element_path
from urdfix.io.reader import load_urdf_tree, parse_urdf_string

logger = logging.getLogger(__name__)

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"

# A child node as seen by lowering: an lxml element, comment or processing
# instruction, or a non-blank text segment.
_Node = Union[etree._Element, str]


# Generic tree helpers

def _qualified(element: etree._Element, name: str) -> str:
    """Turn a Clark-notation name back into its ``prefix:local`` form."""
    if not name.startswith("{"):
        return name
    uri, local = name[1:].split("}", 1)
    if uri == XML_NAMESPACE:
        return f"xml:{local}"
    for prefix, candidate in element.nsmap.items():
        if candidate == uri and prefix is not None:
            return f"{prefix}:{local}"
    return local


def _tag(element: etree._Element) -> str:
    return _qualified(element, element.tag)


def _all_attributes(element: etree._Element) -> Attributes:
    """Namespace declarations made on this element, then its attributes."""
    parent = element.getparent()
    inherited = parent.nsmap if parent is not None else {}
    declared = []
    for prefix, uri in element.nsmap.items():
        if inherited.get(prefix) != uri:
            declared.append((f"xmlns:{prefix}" if prefix else "xmlns", uri))
    attributes = [(_qualified(element, key), value) for key, value in element.attrib.items()]
    return tuple(declared) + tuple(attributes)


def _is_kept(node: etree._Element) -> bool:
    return node.tag is etree.Comment or node.tag is etree.PI or isinstance(node.tag, str)


def _child_nodes(element: etree._Element) -> List[_Node]:
    """Elements, comments, processing instructions and non-blank text
    segments, in document order."""
    nodes: List[_Node] = []
    if element.text and element.text.strip():
        nodes.append(element.text.strip())
    for child in element:
        if _is_kept(child):
            nodes.append(child)
        else:
            logger.debug("Dropping unsupported node %r at line %s", child, child.sourceline)
        if child.tail and child.tail.strip():
            nodes.append(child.tail.strip())
    return nodes


def _has_structure(element: etree._Element) -> bool:
    """Whether the element has element, comment or PI children."""
    return any(_is_kept(child) for child in element)


def _has_content(element: etree._Element) -> bool:
    """Whether the element has any child node or non-blank text."""
    return _has_structure(element) or bool(element.text and element.text.strip())


def to_opaque(node: _Node) -> OpaqueNode:
    """Convert any child node into an opaque node, recursively."""
    if isinstance(node, str):
        return OpaqueText(node)
    if node.tag is etree.Comment:
        return Comment(node.text or "")
    if node.tag is etree.PI:
        return ProcessingInstruction(node.target, node.text)
    if _has_structure(node):
        children = tuple(to_opaque(child) for child in _child_nodes(node))
        return OpaqueElement(
            tag=_tag(node),
            attributes=_all_attributes(node),
            text=None,
            children=children,
            self_closing=False,
        )
    return OpaqueElement(
        tag=_tag(node),
        attributes=_all_attributes(node),
        text=node.text,
        children=(),
        self_closing=node.text is None,
    )


# Attribute reading

class _Context:
    """Collects lowering issues for one document."""

    def __init__(self):
        self.issues: List[LoweringIssue] = []
        # (kind, index) of the top-level element being lowered
        self.owner: Optional[Tuple[str, int]] = None

    def report(self, path: str, attribute: str, message: str, kind: str = "missing") -> None:
        logger.debug("%s: %s", path, message)
        self.issues.append(LoweringIssue(
            path=path, attribute=attribute, message=message, kind=kind, owner=self.owner
        ))


class _Attrs:
    """Typed reads of one element's attributes.

    Attributes that were read successfully are consumed; anything else,
    including values that failed to parse, stays in ``extras()``.
    """

    def __init__(self, ctx: _Context, element: etree._Element, path: str):
        self.ctx = ctx
        self.element = element
        self.path = path
        self.consumed = set()
        self.missing: List[str] = []

    def _raw(self, name: str, required: bool) -> Optional[str]:
        value = self.element.get(name)
        if value is None and required:
            self.missing.append(name)
            self.ctx.report(self.path, name, f"<{self.element.tag}> is missing required attribute '{name}'")
        return value

    def text(self, name: str, required: bool = False) -> Optional[str]:
        value = self._raw(name, required)
        if value is not None:
            self.consumed.add(name)
        return value

    def number(self, name: str, required: bool = False) -> Optional[float]:
        values = self.vector(name, 1, required)
        return values[0] if values is not None else None

    def vector(self, name: str, size: int = 3, required: bool = False) -> Optional[Tuple[float, ...]]:
        raw = self._raw(name, required)
        if raw is None:
            return None
        try:
            values = tuple(float(part) for part in raw.split())
        except ValueError:
            values = None
        if values is None or len(values) != size:
            expected = "a number" if size == 1 else f"{size} numbers"
            self.ctx.report(
                self.path, name, f"attribute '{name}'=\"{raw}\" is not {expected}", kind="malformed"
            )
            return None
        self.consumed.add(name)
        return values

    def extras(self) -> Attributes:
        return tuple(
            (key, value) for key, value in _all_attributes(self.element) if key not in self.consumed
        )


# Leaf descriptors. Each returns None when the element unexpectedly has
# child content, in which case the caller keeps it opaque.

def _lower_origin(ctx: _Context, element: etree._Element, path: str) -> Optional[Origin]:
    if _has_content(element):
        return None
    attrs = _Attrs(ctx, element, f"{path}/origin")
    return Origin(xyz=attrs.vector("xyz"), rpy=attrs.vector("rpy"), extra_attributes=attrs.extras())


def _lower_axis(ctx: _Context, element: etree._Element, path: str) -> Optional[Axis]:
    if _has_content(element):
        return None
    attrs = _Attrs(ctx, element, f"{path}/axis")
    return Axis(xyz=attrs.vector("xyz"), extra_attributes=attrs.extras())


def _lower_limit(ctx: _Context, element: etree._Element, path: str) -> Optional[Limit]:
    if _has_content(element):
        return None
    attrs = _Attrs(ctx, element, f"{path}/limit")
    return Limit(
        lower=attrs.number("lower"),
        upper=attrs.number("upper"),
        effort=attrs.number("effort"),
        velocity=attrs.number("velocity"),
        extra_attributes=attrs.extras(),
    )


def _lower_dynamics(ctx: _Context, element: etree._Element, path: str) -> Optional[Dynamics]:
    if _has_content(element):
        return None
    attrs = _Attrs(ctx, element, f"{path}/dynamics")
    return Dynamics(
        damping=attrs.number("damping"),
        friction=attrs.number("friction"),
        extra_attributes=attrs.extras(),
    )


def _lower_mimic(ctx: _Context, element: etree._Element, path: str) -> Optional[Mimic]:
    if _has_content(element):
        return None
    attrs = _Attrs(ctx, element, f"{path}/mimic")
    return Mimic(
        joint=attrs.text("joint", required=True),
        multiplier=attrs.number("multiplier"),
        offset=attrs.number("offset"),
        extra_attributes=attrs.extras(),
    )


def _lower_mass(ctx: _Context, element: etree._Element, path: str) -> Optional[Mass]:
    if _has_content(element):
        return None
    attrs = _Attrs(ctx, element, f"{path}/mass")
    return Mass(value=attrs.number("value", required=True), extra_attributes=attrs.extras())


def _lower_inertia(ctx: _Context, element: etree._Element, path: str) -> Optional[Inertia]:
    if _has_content(element):
        return None
    attrs = _Attrs(ctx, element, f"{path}/inertia")
    return Inertia(
        ixx=attrs.number("ixx", required=True),
        ixy=attrs.number("ixy", required=True),
        ixz=attrs.number("ixz", required=True),
        iyy=attrs.number("iyy", required=True),
        iyz=attrs.number("iyz", required=True),
        izz=attrs.number("izz", required=True),
        extra_attributes=attrs.extras(),
    )


def _lower_color(ctx: _Context, element: etree._Element, path: str) -> Optional[Color]:
    if _has_content(element):
        return None
    attrs = _Attrs(ctx, element, f"{path}/color")
    return Color(rgba=attrs.vector("rgba", 4, required=True), extra_attributes=attrs.extras())


def _lower_texture(ctx: _Context, element: etree._Element, path: str) -> Optional[Texture]:
    if _has_content(element):
        return None
    attrs = _Attrs(ctx, element, f"{path}/texture")
    return Texture(filename=attrs.text("filename", required=True), extra_attributes=attrs.extras())


class _Children:
    """Dispatches the child nodes of a typed container.

    Each recognized tag maps to a handler. A handler returning False (for
    instance a singleton seen twice, or a descriptor with content) sends the
    node to ``extensions`` instead.
    """

    def __init__(self, element: etree._Element):
        self.element = element
        self.extensions: List[Anchored] = []

    def dispatch(self, handlers: dict) -> Tuple[Anchored, ...]:
        for position, node in enumerate(_child_nodes(self.element)):
            handler: Optional[Callable[[etree._Element], bool]] = None
            if isinstance(node, etree._Element) and isinstance(node.tag, str):
                handler = handlers.get(node.tag)
            if handler is None or not handler(node):
                self.extensions.append(Anchored(position, to_opaque(node)))
        return tuple(self.extensions)


def _lower_geometry(ctx: _Context, element: etree._Element, path: str) -> Geometry:
    geometry_path = f"{path}/geometry"
    nodes = _child_nodes(element)
    if element.attrib or len(nodes) != 1 or not isinstance(nodes[0], etree._Element):
        if not nodes:
            ctx.report(geometry_path, "shape", "<geometry> has no shape")
        return OpaqueGeometry(to_opaque(element))

    shape = nodes[0]
    if _has_content(shape):
        return OpaqueGeometry(to_opaque(element))
    shape_path = f"{geometry_path}/{shape.tag}"
    attrs = _Attrs(ctx, shape, shape_path)
    if shape.tag == "box":
        return Box(size=attrs.vector("size", required=True), extra_attributes=attrs.extras())
    if shape.tag == "cylinder":
        return Cylinder(
            radius=attrs.number("radius", required=True),
            length=attrs.number("length", required=True),
            extra_attributes=attrs.extras(),
        )
    if shape.tag == "sphere":
        return Sphere(radius=attrs.number("radius", required=True), extra_attributes=attrs.extras())
    if shape.tag == "mesh":
        return Mesh(
            filename=attrs.text("filename", required=True),
            scale=attrs.vector("scale"),
            extra_attributes=attrs.extras(),
        )
    return OpaqueGeometry(to_opaque(element))


def _lower_material(ctx: _Context, element: etree._Element, path: str) -> Material:
    attrs = _Attrs(ctx, element, path)
    name = attrs.text("name", required=True)
    fields = {}

    def single(key, lower_fn):
        def handle(child):
            if key in fields:
                return False
            value = lower_fn(ctx, child, path)
            if value is None:
                return False
            fields[key] = value
            return True
        return handle

    extensions = _Children(element).dispatch({
        "color": single("color", _lower_color),
        "texture": single("texture", _lower_texture),
    })
    return Material(
        name=name,
        color=fields.get("color"),
        texture=fields.get("texture"),
        extra_attributes=attrs.extras(),
        extensions=extensions,
        missing=tuple(attrs.missing),
    )


def _lower_visual(ctx: _Context, element: etree._Element, path: str, is_visual: bool):
    attrs = _Attrs(ctx, element, path)
    name = attrs.text("name")
    fields = {}

    def origin(child):
        if "origin" in fields:
            return False
        value = _lower_origin(ctx, child, path)
        if value is None:
            return False
        fields["origin"] = value
        return True

    def geometry(child):
        if "geometry" in fields:
            return False
        fields["geometry"] = _lower_geometry(ctx, child, path)
        return True

    def material(child):
        if "material" in fields:
            return False
        fields["material"] = _lower_material(ctx, child, f"{path}/material")
        return True

    handlers = {"origin": origin, "geometry": geometry}
    if is_visual:
        handlers["material"] = material
    extensions = _Children(element).dispatch(handlers)

    if "geometry" not in fields:
        ctx.report(path, "geometry", f"<{element.tag}> has no <geometry>")
    if is_visual:
        return Visual(
            name=name,
            origin=fields.get("origin"),
            geometry=fields.get("geometry"),
            material=fields.get("material"),
            extra_attributes=attrs.extras(),
            extensions=extensions,
        )
    return Collision(
        name=name,
        origin=fields.get("origin"),
        geometry=fields.get("geometry"),
        extra_attributes=attrs.extras(),
        extensions=extensions,
    )


def _lower_inertial(ctx: _Context, element: etree._Element, path: str) -> Inertial:
    inertial_path = f"{path}/inertial"
    attrs = _Attrs(ctx, element, inertial_path)
    fields = {}
    lowerers = {"origin": _lower_origin, "mass": _lower_mass, "inertia": _lower_inertia}

    def single(key):
        def handle(child):
            if key in fields:
                return False
            value = lowerers[key](ctx, child, inertial_path)
            if value is None:
                return False
            fields[key] = value
            return True
        return handle

    extensions = _Children(element).dispatch({key: single(key) for key in lowerers})
    return Inertial(
        origin=fields.get("origin"),
        mass=fields.get("mass"),
        inertia=fields.get("inertia"),
        extra_attributes=attrs.extras(),
        extensions=extensions,
    )


def _lower_link(ctx: _Context, element: etree._Element, index: int) -> Link:
    path = element_path("link", element.get("name"), index)
    attrs = _Attrs(ctx, element, path)
    name = attrs.text("name", required=True)
    inertial: List[Inertial] = []
    visuals: List[Visual] = []
    collisions: List[Collision] = []

    def handle_inertial(child):
        if inertial:
            return False
        inertial.append(_lower_inertial(ctx, child, path))
        return True

    def handle_visual(child):
        visuals.append(_lower_visual(ctx, child, f"{path}/visual[{len(visuals)}]", True))
        return True

    def handle_collision(child):
        collisions.append(_lower_visual(ctx, child, f"{path}/collision[{len(collisions)}]", False))
        return True

    extensions = _Children(element).dispatch({
        "inertial": handle_inertial,
        "visual": handle_visual,
        "collision": handle_collision,
    })
    return Link(
        name=name,
        inertial=inertial[0] if inertial else None,
        visuals=tuple(visuals),
        collisions=tuple(collisions),
        extra_attributes=attrs.extras(),
        extensions=extensions,
        missing=tuple(attrs.missing),
    )


def _lower_joint(ctx: _Context, element: etree._Element, index: int) -> Joint:
    path = element_path("joint", element.get("name"), index)
    attrs = _Attrs(ctx, element, path)
    name = attrs.text("name", required=True)
    joint_type = attrs.text("type", required=True)
    missing = list(attrs.missing)
    fields = {}
    seen_refs = set()

    def link_ref(role):
        def handle(child):
            if role in seen_refs or _has_content(child):
                return False
            seen_refs.add(role)
            ref_attrs = _Attrs(ctx, child, f"{path}/{role}")
            link = ref_attrs.text("link", required=True)
            if link is None:
                missing.append(role)
            else:
                fields[role] = link
            fields[f"{role}_attributes"] = ref_attrs.extras()
            return True
        return handle

    lowerers = {
        "origin": _lower_origin,
        "axis": _lower_axis,
        "limit": _lower_limit,
        "dynamics": _lower_dynamics,
        "mimic": _lower_mimic,
    }

    def single(key):
        def handle(child):
            if key in fields:
                return False
            value = lowerers[key](ctx, child, path)
            if value is None:
                return False
            fields[key] = value
            return True
        return handle

    handlers = {key: single(key) for key in lowerers}
    handlers["parent"] = link_ref("parent")
    handlers["child"] = link_ref("child")
    extensions = _Children(element).dispatch(handlers)

    for role in ("parent", "child"):
        if role not in seen_refs:
            missing.append(role)
            ctx.report(path, role, f"joint has no <{role}> element")

    return Joint(
        name=name,
        type=joint_type,
        parent=fields.get("parent"),
        child=fields.get("child"),
        parent_attributes=fields.get("parent_attributes", ()),
        child_attributes=fields.get("child_attributes", ()),
        origin=fields.get("origin"),
        axis=fields.get("axis"),
        limit=fields.get("limit"),
        dynamics=fields.get("dynamics"),
        mimic=fields.get("mimic"),
        extra_attributes=attrs.extras(),
        extensions=extensions,
        missing=tuple(missing),
    )


def lower(root: etree._Element) -> Document:
    """Lower a parsed ``<robot>`` element into a Document.

    Args:
        root: The ``<robot>`` element produced by the reader.

    Returns:
        Document: The typed model, with lowering issues attached.
    """
    ctx = _Context()
    attrs = _Attrs(ctx, root, ROBOT_PATH)
    name = attrs.text("name", required=True)
    links: List[Link] = []
    joints: List[Joint] = []
    materials: List[Material] = []

    def owned(kind, elements, lower_fn):
        def handle(child):
            ctx.owner = (kind, len(elements))
            try:
                elements.append(lower_fn(child, len(elements)))
            finally:
                ctx.owner = None
            return True
        return handle

    def lower_material(child, index):
        path = element_path("material", child.get("name"), index)
        return _lower_material(ctx, child, path)

    extensions = _Children(root).dispatch({
        "link": owned("link", links, lambda child, index: _lower_link(ctx, child, index)),
        "joint": owned("joint", joints, lambda child, index: _lower_joint(ctx, child, index)),
        "material": owned("material", materials, lower_material),
    })

    preamble = tuple(
        to_opaque(node)
        for node in reversed(list(root.itersiblings(preceding=True)))
        if node.tag is etree.Comment or node.tag is etree.PI
    )
    postamble = tuple(
        to_opaque(node)
        for node in root.itersiblings()
        if node.tag is etree.Comment or node.tag is etree.PI
    )

    document = Document(
        name=name,
        links=tuple(links),
        joints=tuple(joints),
        materials=tuple(materials),
        extensions=extensions,
        extra_attributes=attrs.extras(),
        preamble=preamble,
        postamble=postamble,
        missing=tuple(attrs.missing),
        issues=tuple(ctx.issues),
    )
    logger.debug(
        "Lowered robot '%s': %d links, %d joints, %d materials, %d opaque fragments, %d issues",
        name, len(links), len(joints), len(materials), len(extensions), len(ctx.issues),
    )
    return document


def parse_document(content, source: Optional[str] = None) -> Document:
    """Parse URDF text (str or bytes) and lower it into a Document."""
    return lower(parse_urdf_string(content, source=source))


def load_document(urdf_path) -> Document:
    """Load a URDF file and lower it into a Document.

    Args:
        urdf_path: Path to the URDF file to load.

    Returns:
        Document: The typed model of the file.
    """
    return lower(load_urdf_tree(urdf_path))
