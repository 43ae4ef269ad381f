"""Tests for reading and lowering URDF documents."""

import pytest

from conftest import by_name, robot
from urdfix.core import (
    Anchored,
    Box,
    Comment,
    Cylinder,
    Document,
    Mesh,
    OpaqueElement,
    OpaqueGeometry,
    OpaqueText,
    ProcessingInstruction,
)
from urdfix.exceptions import UrdfParseError
from urdfix.io import load_document, parse_document


def test_load_simple_arm(arm):
    """Test loading the arm fixture into a Document."""
    assert isinstance(arm, Document)
    assert arm.name == "simple_arm"
    assert [link.name for link in arm.links] == ["base_link", "upper_arm", "forearm"]
    assert [joint.name for joint in arm.joints] == ["shoulder", "elbow"]
    assert [material.name for material in arm.materials] == ["grey"]
    assert arm.issues == ()
    assert arm.missing == ()


def test_arm_joint_fields(arm):
    shoulder = by_name(arm.joints, "shoulder")
    assert shoulder.type == "revolute"
    assert shoulder.parent == "base_link"
    assert shoulder.child == "upper_arm"
    assert shoulder.origin.xyz == (0.0, 0.0, 0.1)
    assert shoulder.origin.rpy == (0.0, 0.0, 0.0)
    assert shoulder.axis.xyz == (0.0, 0.0, 1.0)
    assert shoulder.limit.lower == -1.57
    assert shoulder.limit.velocity == 1.0
    assert shoulder.dynamics is None

    elbow = by_name(arm.joints, "elbow")
    assert elbow.dynamics.damping == 0.1
    assert elbow.dynamics.friction is None


def test_arm_link_fields(arm):
    base = by_name(arm.links, "base_link")
    assert base.inertial.mass.value == 2.0
    assert base.inertial.origin.xyz == (0.0, 0.0, 0.05)
    assert base.inertial.inertia.izz == 0.01
    assert isinstance(base.visuals[0].geometry, Cylinder)
    assert base.visuals[0].geometry.radius == 0.1
    assert base.visuals[0].material.name == "grey"
    assert base.visuals[0].material.color is None
    assert len(base.collisions) == 1

    upper = by_name(arm.links, "upper_arm")
    assert upper.visuals[0].name == "upper_arm_visual"
    assert upper.visuals[0].geometry == Box(size=(0.05, 0.05, 0.3))

    forearm = by_name(arm.links, "forearm")
    mesh = forearm.visuals[0].geometry
    assert isinstance(mesh, Mesh)
    assert mesh.filename == "package://simple_arm/meshes/forearm.stl"
    assert mesh.scale == (0.001, 0.001, 0.001)


def test_arm_material_and_preamble(arm):
    grey = arm.materials[0]
    assert grey.color.rgba == (0.5, 0.5, 0.5, 1.0)
    assert arm.preamble == (Comment(" Two-joint arm used across the test-suite "),)
    assert arm.extra_attributes == (("xmlns:xacro", "http://www.ros.org/wiki/xacro"),)


def test_arm_extensions_keep_position(arm):
    """Unknown robot children stay anchored where they appeared."""
    comment, gazebo = arm.extensions
    assert comment == Anchored(6, Comment(" simulator settings "))
    assert gazebo.position == 7
    assert gazebo.node.tag == "gazebo"
    assert gazebo.node.attributes == (("reference", "forearm"),)
    material = gazebo.node.children[0]
    assert material.tag == "material"
    assert material.text == "Gazebo/Grey"


def test_missing_link_name():
    document = parse_document(robot("<link/>"))
    link = document.links[0]
    assert link.name is None
    assert link.missing == ("name",)
    issue = document.issues[0]
    assert issue.path == "/robot/link[#0]"
    assert issue.attribute == "name"
    assert issue.kind == "missing"
    assert issue.owner == ("link", 0)


def test_missing_robot_name():
    document = parse_document('<robot><link name="a"/></robot>')
    assert document.name is None
    assert document.missing == ("name",)


def test_joint_without_parent_and_child():
    document = parse_document(robot('<joint name="joint1" type="revolute"/>'))
    joint = document.joints[0]
    assert joint.parent is None
    assert joint.child is None
    assert joint.missing == ("parent", "child")
    assert [issue.attribute for issue in document.issues] == ["parent", "child"]


def test_parent_without_link_attribute():
    document = parse_document(robot(
        '<link name="a"/><joint name="j" type="fixed"><parent/><child link="a"/></joint>'
    ))
    joint = document.joints[0]
    assert joint.parent is None
    assert joint.missing == ("parent",)
    assert document.issues[0].path == "/robot/joint[j]/parent"


def test_malformed_vector_is_kept_verbatim():
    document = parse_document(robot(
        '<joint name="j" type="fixed">'
        '<parent link="a"/><child link="b"/><origin xyz="1 2" rpy="0 0 0"/>'
        "</joint>"
    ))
    origin = document.joints[0].origin
    assert origin.xyz is None
    assert origin.rpy == (0.0, 0.0, 0.0)
    assert origin.extra_attributes == (("xyz", "1 2"),)
    issue = document.issues[0]
    assert issue.kind == "malformed"
    assert issue.attribute == "xyz"
    assert issue.path == "/robot/joint[j]/origin"


def test_non_numeric_value_is_malformed():
    document = parse_document(robot('<link name="a"><inertial><mass value="heavy"/></inertial></link>'))
    mass = document.links[0].inertial.mass
    assert mass.value is None
    assert mass.extra_attributes == (("value", "heavy"),)
    assert document.issues[0].kind == "malformed"


def test_unknown_attributes_and_children():
    document = parse_document(robot(
        '<link name="a" custom="1"><sensor type="camera"/><!-- note --></link>'
    ))
    link = document.links[0]
    assert link.extra_attributes == (("custom", "1"),)
    assert link.extensions == (
        Anchored(0, OpaqueElement("sensor", (("type", "camera"),))),
        Anchored(1, Comment(" note ")),
    )


def test_whitespace_only_text_is_kept_on_childless_element():
    document = parse_document(robot('<link name="a"><foo>   </foo></link>'))
    node = document.links[0].extensions[0].node
    assert node.text == "   "
    assert node.is_whitespace_only
    assert not node.self_closing


def test_empty_opaque_element_is_self_closing():
    document = parse_document(robot('<link name="a"><foo></foo></link>'))
    node = document.links[0].extensions[0].node
    assert node.text is None
    assert node.self_closing


def test_repeated_singleton_becomes_opaque():
    document = parse_document(robot(
        '<joint name="j" type="fixed"><parent link="a"/><child link="b"/>'
        '<origin xyz="1 0 0"/><origin xyz="2 0 0"/></joint>'
    ))
    joint = document.joints[0]
    assert joint.origin.xyz == (1.0, 0.0, 0.0)
    assert joint.extensions == (Anchored(3, OpaqueElement("origin", (("xyz", "2 0 0"),))),)


def test_descriptor_with_content_becomes_opaque():
    document = parse_document(robot(
        '<joint name="j" type="fixed"><parent link="a"/><child link="b"/>'
        '<origin xyz="1 0 0"><!-- odd --></origin></joint>'
    ))
    joint = document.joints[0]
    assert joint.origin is None
    node = joint.extensions[0].node
    assert node.tag == "origin"
    assert node.children == (Comment(" odd "),)


def test_unknown_geometry_is_opaque():
    document = parse_document(robot(
        '<link name="a"><visual><geometry><capsule radius="1" length="2"/></geometry></visual></link>'
    ))
    geometry = document.links[0].visuals[0].geometry
    assert isinstance(geometry, OpaqueGeometry)
    assert geometry.node.tag == "geometry"
    assert geometry.node.children[0].tag == "capsule"


def test_geometry_with_two_shapes_is_opaque():
    document = parse_document(robot(
        '<link name="a"><collision><geometry><box size="1 1 1"/><sphere radius="1"/></geometry></collision></link>'
    ))
    geometry = document.links[0].collisions[0].geometry
    assert isinstance(geometry, OpaqueGeometry)
    assert len(geometry.node.children) == 2


def test_empty_geometry_is_reported():
    document = parse_document(robot('<link name="a"><visual><geometry/></visual></link>'))
    assert isinstance(document.links[0].visuals[0].geometry, OpaqueGeometry)
    assert document.issues[0].path == "/robot/link[a]/visual[0]/geometry"
    assert document.issues[0].attribute == "shape"


def test_namespaced_extension_keeps_prefix():
    document = parse_document(
        '<robot name="r" xmlns:xacro="http://www.ros.org/wiki/xacro">'
        '<xacro:property name="width" value="0.2"/></robot>'
    )
    node = document.extensions[0].node
    assert node.tag == "xacro:property"
    assert node.attributes == (("name", "width"), ("value", "0.2"))


def test_mixed_text_is_kept():
    document = parse_document('<robot name="r">hello<link name="a"/></robot>')
    assert document.extensions == (Anchored(0, OpaqueText("hello")),)
    assert document.links[0].name == "a"


def test_parent_and_child_keep_extra_attributes():
    document = parse_document(robot(
        '<link name="a"/><link name="b"/>'
        '<joint name="j" type="fixed"><parent link="a" frame="x"/><child link="b" foo="1"/></joint>'
    ))
    joint = document.joints[0]
    assert joint.parent == "a"
    assert joint.parent_attributes == (("frame", "x"),)
    assert joint.child_attributes == (("foo", "1"),)
    assert document.issues == ()


def test_parent_with_text_becomes_opaque():
    document = parse_document(robot(
        '<link name="a"/><link name="b"/>'
        '<joint name="j" type="fixed"><parent link="a" foo="1">keepme</parent><child link="b"/></joint>'
    ))
    joint = document.joints[0]
    assert joint.parent is None
    assert joint.extensions == (
        Anchored(0, OpaqueElement("parent", (("link", "a"), ("foo", "1")), text="keepme", self_closing=False)),
    )


def test_leaf_descriptor_with_text_becomes_opaque():
    document = parse_document(robot(
        '<joint name="j" type="fixed"><parent link="a"/><child link="b"/>'
        '<origin xyz="0 0 0">note</origin></joint>'
    ))
    joint = document.joints[0]
    assert joint.origin is None
    node = joint.extensions[0].node
    assert node.tag == "origin"
    assert node.text == "note"


def test_shape_with_text_makes_geometry_opaque():
    document = parse_document(robot(
        '<link name="a"><visual><geometry><box size="1 1 1">big</box></geometry></visual></link>'
    ))
    geometry = document.links[0].visuals[0].geometry
    assert isinstance(geometry, OpaqueGeometry)
    assert geometry.node.children[0].text == "big"


def test_processing_instructions_are_kept():
    document = parse_document('<robot name="r"><?pi data?><link name="a"/></robot>')
    assert document.extensions == (Anchored(0, ProcessingInstruction("pi", "data")),)


def test_comments_after_robot_form_the_postamble():
    document = parse_document(
        '<?xml version="1.0"?>\n<?style sheet?>\n<robot name="r"/>\n<!-- trailer -->\n<?end now?>\n'
    )
    assert document.preamble == (ProcessingInstruction("style", "sheet"),)
    assert document.postamble == (Comment(" trailer "), ProcessingInstruction("end", "now"))


def test_issues_record_their_owner():
    document = parse_document(robot(
        '<material name="m"><color/></material><link/><joint name="j" type="fixed"/>'
    ))
    owners = [issue.owner for issue in document.issues]
    assert owners == [("material", 0), ("link", 0), ("joint", 0), ("joint", 0)]
    assert parse_document("<robot/>").issues[0].owner is None


def test_malformed_xml_raises():
    with pytest.raises(UrdfParseError):
        parse_document('<robot name="r"><link name="a"></robot>')


def test_wrong_root_raises():
    with pytest.raises(UrdfParseError, match="Root element must be 'robot'"):
        parse_document('<sdf version="1.6"/>')


def test_parse_error_carries_source():
    with pytest.raises(UrdfParseError) as excinfo:
        parse_document("<robot", source="broken.urdf")
    assert excinfo.value.source == "broken.urdf"
    assert str(excinfo.value).startswith("broken.urdf")


def test_missing_file_raises_os_error(tmp_path):
    with pytest.raises(OSError):
        load_document(tmp_path / "missing.urdf")
