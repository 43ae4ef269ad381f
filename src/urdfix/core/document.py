"""Typed, immutable document model for URDF robot descriptions.

Every value in this module is a frozen ``flax.struct.dataclass``: equality is
structural and updated copies are produced with ``.replace(...)``, so fix
passes never mutate a Document they were handed.

An optional typed attribute that is ``None`` was absent (or unusable) in the
source. Content the schema does not recognize is kept as opaque nodes
anchored at its original position among the parent's child nodes.
"""

from typing import Optional, Tuple, Union

from flax import struct

Vec3 = Tuple[float, float, float]
Attributes = Tuple[Tuple[str, str], ...]

JOINT_TYPES = ("fixed", "revolute", "continuous", "prismatic", "planar", "floating")

DEFAULT_AXIS: Vec3 = (1.0, 0.0, 0.0)
ZERO_VEC3: Vec3 = (0.0, 0.0, 0.0)


# Opaque content

@struct.dataclass
class Comment:
    """An XML comment, kept verbatim."""
    text: str = struct.field(pytree_node=False)


@struct.dataclass
class OpaqueText:
    """Non-blank text sitting between child elements of an opaque element."""
    text: str = struct.field(pytree_node=False)


@struct.dataclass
class OpaqueElement:
    """An element the schema does not recognize, kept as a generic tree.

    Attributes:
        tag: Qualified tag name (``prefix:local`` for namespaced tags).
        attributes: Attribute pairs in source order.
        text: Text of a childless element. ``None`` when the element has
              children or no text at all.
        children: Child nodes in source order.
        self_closing: Whether a childless, textless element is written as
                      ``<tag/>``.
    """
    tag: str = struct.field(pytree_node=False)
    attributes: Attributes = struct.field(pytree_node=False, default=())
    text: Optional[str] = struct.field(pytree_node=False, default=None)
    children: Tuple["OpaqueNode", ...] = ()
    self_closing: bool = struct.field(pytree_node=False, default=True)

    @property
    def is_whitespace_only(self) -> bool:
        return not self.children and self.text is not None and not self.text.strip()


@struct.dataclass
class ProcessingInstruction:
    """An XML processing instruction, ``<?target text?>``."""
    target: str = struct.field(pytree_node=False)
    text: Optional[str] = struct.field(pytree_node=False, default=None)


OpaqueNode = Union[OpaqueElement, OpaqueText, Comment, ProcessingInstruction]


@struct.dataclass
class Anchored:
    """An opaque node placed at ``position`` among its parent's child nodes."""
    position: int = struct.field(pytree_node=False)
    node: OpaqueNode


# Leaf descriptors

@struct.dataclass
class Origin:
    xyz: Optional[Vec3] = None
    rpy: Optional[Vec3] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())

    @property
    def effective_xyz(self) -> Vec3:
        return self.xyz if self.xyz is not None else ZERO_VEC3

    @property
    def effective_rpy(self) -> Vec3:
        return self.rpy if self.rpy is not None else ZERO_VEC3


@struct.dataclass
class Axis:
    xyz: Optional[Vec3] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())

    @property
    def effective_xyz(self) -> Vec3:
        return self.xyz if self.xyz is not None else DEFAULT_AXIS


@struct.dataclass
class Limit:
    lower: Optional[float] = None
    upper: Optional[float] = None
    effort: Optional[float] = None
    velocity: Optional[float] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Dynamics:
    damping: Optional[float] = None
    friction: Optional[float] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Mimic:
    joint: Optional[str] = struct.field(pytree_node=False, default=None)
    multiplier: Optional[float] = None
    offset: Optional[float] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Mass:
    value: Optional[float] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Inertia:
    ixx: Optional[float] = None
    ixy: Optional[float] = None
    ixz: Optional[float] = None
    iyy: Optional[float] = None
    iyz: Optional[float] = None
    izz: Optional[float] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Inertial:
    origin: Optional[Origin] = None
    mass: Optional[Mass] = None
    inertia: Optional[Inertia] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())
    extensions: Tuple[Anchored, ...] = ()


# Geometry: a closed union, consumers dispatch on the concrete type.

@struct.dataclass
class Box:
    size: Optional[Vec3] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Cylinder:
    radius: Optional[float] = None
    length: Optional[float] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Sphere:
    radius: Optional[float] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Mesh:
    filename: Optional[str] = struct.field(pytree_node=False, default=None)
    scale: Optional[Vec3] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class OpaqueGeometry:
    """A ``<geometry>`` element that does not hold exactly one known shape.

    The whole ``<geometry>`` element is kept as ``node``.
    """
    node: OpaqueElement


Geometry = Union[Box, Cylinder, Sphere, Mesh, OpaqueGeometry]


def geometry_kind(geometry: Geometry) -> str:
    """Return the tag name of a geometry variant."""
    if isinstance(geometry, Box):
        return "box"
    if isinstance(geometry, Cylinder):
        return "cylinder"
    if isinstance(geometry, Sphere):
        return "sphere"
    if isinstance(geometry, Mesh):
        return "mesh"
    if isinstance(geometry, OpaqueGeometry):
        return "opaque"
    raise TypeError(f"Unknown geometry variant: {type(geometry).__name__}")


# Materials

@struct.dataclass
class Color:
    rgba: Optional[Tuple[float, float, float, float]] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Texture:
    filename: Optional[str] = struct.field(pytree_node=False, default=None)
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())


@struct.dataclass
class Material:
    """A named material: an RGBA color, a texture, or a bare reference.

    Inside a ``<visual>`` a material without color or texture is a reference
    to a top-level material of the same name.
    """
    name: Optional[str] = struct.field(pytree_node=False, default=None)
    color: Optional[Color] = None
    texture: Optional[Texture] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())
    extensions: Tuple[Anchored, ...] = ()
    missing: Tuple[str, ...] = struct.field(pytree_node=False, default=())


# Links and joints

@struct.dataclass
class Visual:
    name: Optional[str] = struct.field(pytree_node=False, default=None)
    origin: Optional[Origin] = None
    geometry: Optional[Geometry] = None
    material: Optional[Material] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())
    extensions: Tuple[Anchored, ...] = ()


@struct.dataclass
class Collision:
    name: Optional[str] = struct.field(pytree_node=False, default=None)
    origin: Optional[Origin] = None
    geometry: Optional[Geometry] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())
    extensions: Tuple[Anchored, ...] = ()


@struct.dataclass
class Link:
    """A rigid body of the robot.

    Attributes:
        name: Unique key within the Document. ``None`` when missing.
        inertial: Optional mass properties.
        visuals: ``<visual>`` elements in source order.
        collisions: ``<collision>`` elements in source order.
        extra_attributes: Unrecognized attributes, in source order.
        extensions: Anchored opaque children.
        missing: Required attributes that were absent.
    """
    name: Optional[str] = struct.field(pytree_node=False, default=None)
    inertial: Optional[Inertial] = None
    visuals: Tuple[Visual, ...] = ()
    collisions: Tuple[Collision, ...] = ()
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())
    extensions: Tuple[Anchored, ...] = ()
    missing: Tuple[str, ...] = struct.field(pytree_node=False, default=())


@struct.dataclass
class Joint:
    """A connection between a parent link and a child link.

    ``parent`` and ``child`` hold link names exactly as written; whether they
    resolve is decided by the graph builder, not by the model. Any other
    attributes of the ``<parent>`` and ``<child>`` elements are kept in
    ``parent_attributes`` and ``child_attributes``.
    """
    name: Optional[str] = struct.field(pytree_node=False, default=None)
    type: Optional[str] = struct.field(pytree_node=False, default=None)
    parent: Optional[str] = struct.field(pytree_node=False, default=None)
    child: Optional[str] = struct.field(pytree_node=False, default=None)
    parent_attributes: Attributes = struct.field(pytree_node=False, default=())
    child_attributes: Attributes = struct.field(pytree_node=False, default=())
    origin: Optional[Origin] = None
    axis: Optional[Axis] = None
    limit: Optional[Limit] = None
    dynamics: Optional[Dynamics] = None
    mimic: Optional[Mimic] = None
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())
    extensions: Tuple[Anchored, ...] = ()
    missing: Tuple[str, ...] = struct.field(pytree_node=False, default=())


@struct.dataclass
class LoweringIssue:
    """A problem found while lowering, reported later by the lint rules.

    ``kind`` is ``"missing"`` (a required attribute or element was absent)
    or ``"malformed"`` (a value could not be parsed and was kept verbatim).
    ``owner`` is the ``(kind, index)`` of the link, joint or material the
    issue was found in, ``None`` for issues on ``<robot>`` itself.
    """
    path: str = struct.field(pytree_node=False)
    attribute: str = struct.field(pytree_node=False)
    message: str = struct.field(pytree_node=False)
    kind: str = struct.field(pytree_node=False, default="missing")
    owner: Optional[Tuple[str, int]] = struct.field(pytree_node=False, default=None)


@struct.dataclass
class Document:
    """Root container of a lowered URDF file.

    Attributes:
        name: Robot name, ``None`` when missing.
        links: Links in document order. May hold duplicate names.
        joints: Joints in document order. May hold duplicate names.
        materials: Top-level materials in document order. May hold
                   duplicate names.
        extensions: Anchored opaque children of ``<robot>``.
        extra_attributes: Unrecognized ``<robot>`` attributes, including
                          namespace declarations.
        preamble: Comments and processing instructions before ``<robot>``.
        postamble: Comments and processing instructions after ``</robot>``.
        missing: Required ``<robot>`` attributes that were absent.
        issues: Lowering issues, in discovery order.
    """
    name: Optional[str] = struct.field(pytree_node=False, default=None)
    links: Tuple[Link, ...] = ()
    joints: Tuple[Joint, ...] = ()
    materials: Tuple[Material, ...] = ()
    extensions: Tuple[Anchored, ...] = ()
    extra_attributes: Attributes = struct.field(pytree_node=False, default=())
    preamble: Tuple[OpaqueNode, ...] = ()
    postamble: Tuple[OpaqueNode, ...] = ()
    missing: Tuple[str, ...] = struct.field(pytree_node=False, default=())
    issues: Tuple[LoweringIssue, ...] = ()

    def link_names(self) -> Tuple[str, ...]:
        """Unique link names in document order."""
        return tuple(dict.fromkeys(link.name for link in self.links if link.name is not None))
