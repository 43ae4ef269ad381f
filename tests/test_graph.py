"""Tests for kinematic graph construction and topology analysis."""

from conftest import robot
from urdfix.graph import (
    JointEdge,
    analyze_topology,
    build_graph,
    find_components,
    find_cycles,
    find_dangling,
    find_leaves,
    find_multi_parent,
    find_roots,
)
from urdfix.io import parse_document


def joint(name, parent, child, joint_type="fixed"):
    return (
        f'<joint name="{name}" type="{joint_type}">'
        f'<parent link="{parent}"/><child link="{child}"/></joint>'
    )


def links(*names):
    return "".join(f'<link name="{name}"/>' for name in names)


def graph_of(body):
    return build_graph(parse_document(robot(body)))


def test_build_graph_from_arm(arm):
    graph = build_graph(arm)
    assert graph.nodes == ("base_link", "upper_arm", "forearm")
    assert graph.edges == (
        JointEdge(joint="shoulder", child="upper_arm", parent="base_link"),
        JointEdge(joint="elbow", child="forearm", parent="upper_arm"),
    )
    assert find_roots(graph) == ("base_link",)
    assert find_leaves(graph) == ("forearm",)
    assert analyze_topology(graph).is_tree


def test_edges_only_for_resolvable_joints():
    graph = graph_of(links("a", "b") + joint("j1", "a", "b") + joint("j2", "a", "ghost"))
    assert [edge.joint for edge in graph.edges] == ["j1"]
    assert len(graph.joints) == 2


def test_duplicate_links_are_one_node():
    graph = graph_of(links("a", "a", "b"))
    assert graph.nodes == ("a", "b")


def test_two_joint_cycle():
    graph = graph_of(links("A", "B") + joint("J1", "A", "B") + joint("J2", "B", "A"))
    assert find_cycles(graph) == (("J1", "J2"),)
    assert find_roots(graph) == ()


def test_self_joint_is_a_cycle():
    graph = graph_of(links("A") + joint("loop", "A", "A"))
    assert find_cycles(graph) == (("loop",),)


def test_cycle_is_rotated_to_first_joint_in_document_order():
    graph = graph_of(
        links("A", "B", "C")
        + joint("J3", "C", "A")
        + joint("J1", "A", "B")
        + joint("J2", "B", "C")
    )
    assert find_cycles(graph) == (("J3", "J1", "J2"),)


def test_cycle_hanging_off_a_tree():
    graph = graph_of(
        links("base", "A", "B")
        + joint("mount", "base", "A")
        + joint("J1", "A", "B")
        + joint("J2", "B", "A")
    )
    cycles = find_cycles(graph)
    assert len(cycles) == 1
    assert set(cycles[0]) == {"J1", "J2"}


def test_long_chain_does_not_recurse():
    """A chain far deeper than the recursion limit is traversed iteratively."""
    count = 5000
    body = links(*(f"l{i}" for i in range(count)))
    body += "".join(joint(f"j{i}", f"l{i}", f"l{i + 1}") for i in range(count - 1))
    graph = graph_of(body)
    assert find_cycles(graph) == ()
    assert find_roots(graph) == ("l0",)
    assert len(find_components(graph)) == 1


def test_components_in_document_order():
    graph = graph_of(links("a", "b", "c", "d") + joint("j1", "c", "a") + joint("j2", "b", "d"))
    assert find_components(graph) == (("a", "c"), ("b", "d"))


def test_multiple_roots():
    graph = graph_of(links("a", "b", "c") + joint("j", "a", "b"))
    assert find_roots(graph) == ("a", "c")
    report = analyze_topology(graph)
    assert not report.is_tree
    assert len(report.components) == 2


def test_dangling_references():
    document = parse_document(robot(
        links("base") + joint("arm_joint", "base", "missing_arm") + '<joint name="loose" type="fixed"/>'
    ))
    dangling = find_dangling(build_graph(document))
    assert [(d.joint, d.role, d.link) for d in dangling] == [
        ("arm_joint", "child", "missing_arm"),
        ("loose", "parent", None),
        ("loose", "child", None),
    ]


def test_multi_parent():
    graph = graph_of(links("a", "b", "c") + joint("j1", "a", "c") + joint("j2", "b", "c"))
    assert find_multi_parent(graph) == (("c", ("j1", "j2")),)
