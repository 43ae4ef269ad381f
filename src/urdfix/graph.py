"""Kinematic graph construction and topology validation.

The graph is derived from a Document on demand and never stored. Nodes are
link names; each joint whose parent and child both resolve contributes a
directed edge child -> parent. All traversals are iterative, so very long
kinematic chains cannot exhaust the interpreter's recursion limit.
"""

import logging
from collections import defaultdict, deque
from typing import Dict, List, Optional, Tuple

from flax import struct

from .core import Document

logger = logging.getLogger(__name__)

WHITE, GRAY, BLACK = 0, 1, 2


@struct.dataclass
class JointEdge:
    """Directed edge from a child link to its parent link."""
    joint: str = struct.field(pytree_node=False)
    child: str = struct.field(pytree_node=False)
    parent: str = struct.field(pytree_node=False)


@struct.dataclass
class JointRef:
    """A joint's declared endpoints, resolved or not."""
    joint: Optional[str] = struct.field(pytree_node=False)
    index: int = struct.field(pytree_node=False)
    parent: Optional[str] = struct.field(pytree_node=False)
    child: Optional[str] = struct.field(pytree_node=False)


@struct.dataclass
class KinematicGraph:
    """Link/joint graph derived from a Document.

    Attributes:
        nodes: Unique link names in document order.
        edges: Edges for joints whose parent and child both resolve, in
               joint order.
        joints: Declared endpoints of every joint, in document order.
    """
    nodes: Tuple[str, ...] = struct.field(pytree_node=False)
    edges: Tuple[JointEdge, ...] = struct.field(pytree_node=False)
    joints: Tuple[JointRef, ...] = struct.field(pytree_node=False)

    def parents_of(self) -> Dict[str, List[JointEdge]]:
        """Outgoing (child -> parent) edges keyed by child link."""
        adjacency: Dict[str, List[JointEdge]] = defaultdict(list)
        for edge in self.edges:
            adjacency[edge.child].append(edge)
        return adjacency

    def children_of(self) -> Dict[str, List[JointEdge]]:
        """Incoming edges keyed by parent link."""
        adjacency: Dict[str, List[JointEdge]] = defaultdict(list)
        for edge in self.edges:
            adjacency[edge.parent].append(edge)
        return adjacency


@struct.dataclass
class DanglingRef:
    """A joint endpoint that names no link in the document.

    ``link`` is None when the joint does not specify the endpoint at all.
    """
    joint: Optional[str] = struct.field(pytree_node=False)
    index: int = struct.field(pytree_node=False)
    role: str = struct.field(pytree_node=False)
    link: Optional[str] = struct.field(pytree_node=False)


@struct.dataclass
class TopologyReport:
    roots: Tuple[str, ...] = struct.field(pytree_node=False)
    components: Tuple[Tuple[str, ...], ...] = struct.field(pytree_node=False)
    cycles: Tuple[Tuple[str, ...], ...] = struct.field(pytree_node=False)
    dangling: Tuple[DanglingRef, ...] = struct.field(pytree_node=False)
    multi_parent: Tuple[Tuple[str, Tuple[str, ...]], ...] = struct.field(pytree_node=False)

    @property
    def is_tree(self) -> bool:
        return (
            len(self.roots) == 1
            and len(self.components) == 1
            and not self.cycles
            and not self.dangling
            and not self.multi_parent
        )


def build_graph(document: Document) -> KinematicGraph:
    """Derive the kinematic graph of a document.

    Args:
        document: The document to analyze.

    Returns:
        KinematicGraph: Nodes, resolvable edges and declared joint endpoints.
    """
    nodes = document.link_names()
    known = set(nodes)
    edges = []
    joints = []
    for index, joint in enumerate(document.joints):
        joints.append(JointRef(joint=joint.name, index=index, parent=joint.parent, child=joint.child))
        if joint.parent in known and joint.child in known:
            label = joint.name if joint.name is not None else f"#{index}"
            edges.append(JointEdge(joint=label, child=joint.child, parent=joint.parent))
    logger.debug("Built kinematic graph: %d nodes, %d edges", len(nodes), len(edges))
    return KinematicGraph(nodes=nodes, edges=tuple(edges), joints=tuple(joints))


def find_roots(graph: KinematicGraph) -> Tuple[str, ...]:
    """Links that are never a joint's child, in document order."""
    children = {ref.child for ref in graph.joints if ref.child is not None}
    return tuple(node for node in graph.nodes if node not in children)


def find_leaves(graph: KinematicGraph) -> Tuple[str, ...]:
    """Links that are never a joint's parent, in document order."""
    parents = {ref.parent for ref in graph.joints if ref.parent is not None}
    return tuple(node for node in graph.nodes if node not in parents)


def find_components(graph: KinematicGraph) -> Tuple[Tuple[str, ...], ...]:
    """Weakly-connected components, each in document order.

    Components are ordered by their first link in document order.
    """
    neighbours: Dict[str, List[str]] = defaultdict(list)
    for edge in graph.edges:
        neighbours[edge.child].append(edge.parent)
        neighbours[edge.parent].append(edge.child)

    order = {node: i for i, node in enumerate(graph.nodes)}
    seen = set()
    components = []
    for start in graph.nodes:
        if start in seen:
            continue
        seen.add(start)
        members = []
        queue = deque([start])
        while queue:
            current = queue.popleft()
            members.append(current)
            for other in neighbours[current]:
                if other not in seen:
                    seen.add(other)
                    queue.append(other)
        components.append(tuple(sorted(members, key=order.__getitem__)))
    return tuple(components)


def find_cycles(graph: KinematicGraph) -> Tuple[Tuple[str, ...], ...]:
    """Find cycles with an iterative depth-first search.

    Each node is coloured WHITE (unvisited), GRAY (on the current path) or
    BLACK (finished). Reaching a GRAY node closes a cycle; the joints on the
    path from that node back to itself form the reported joint set.

    Returns:
        One tuple of joint names per cycle, in parent-to-child order and
        rotated to start from the joint that appears first in document order.
    """
    parents = graph.parents_of()
    joint_order = {edge.joint: i for i, edge in enumerate(graph.edges)}
    colour = {node: WHITE for node in graph.nodes}
    cycles = []
    seen_cycles = set()

    for start in graph.nodes:
        if colour[start] != WHITE:
            continue
        # Frames are [node, next edge index]; path[i] leads from frame i to i + 1.
        stack = [[start, 0]]
        depth_of = {start: 0}
        path: List[JointEdge] = []
        colour[start] = GRAY
        while stack:
            frame = stack[-1]
            node, position = frame
            edges = parents.get(node, [])
            if position >= len(edges):
                colour[node] = BLACK
                del depth_of[node]
                stack.pop()
                if path:
                    path.pop()
                continue
            frame[1] = position + 1
            edge = edges[position]
            target = edge.parent
            if colour[target] == WHITE:
                colour[target] = GRAY
                depth_of[target] = len(stack)
                path.append(edge)
                stack.append([target, 0])
            elif colour[target] == GRAY:
                # Walked child -> parent; report in parent -> child order.
                joints = [edge.joint] + [e.joint for e in reversed(path[depth_of[target]:])]
                key = frozenset(joints)
                if key in seen_cycles:
                    continue
                seen_cycles.add(key)
                first = min(range(len(joints)), key=lambda i: joint_order[joints[i]])
                cycles.append(tuple(joints[first:] + joints[:first]))
    if cycles:
        logger.debug("Found %d kinematic cycle(s)", len(cycles))
    return tuple(cycles)


def find_dangling(graph: KinematicGraph) -> Tuple[DanglingRef, ...]:
    """Joint endpoints that are unspecified or name a missing link."""
    known = set(graph.nodes)
    dangling = []
    for ref in graph.joints:
        for role, link in (("parent", ref.parent), ("child", ref.child)):
            if link is None or link not in known:
                dangling.append(DanglingRef(joint=ref.joint, index=ref.index, role=role, link=link))
    return tuple(dangling)


def find_multi_parent(graph: KinematicGraph) -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
    """Links that are the child of more than one joint, with those joints."""
    known = set(graph.nodes)
    joints_by_child: Dict[str, List[str]] = defaultdict(list)
    for ref in graph.joints:
        if ref.child in known:
            label = ref.joint if ref.joint is not None else f"#{ref.index}"
            joints_by_child[ref.child].append(label)
    return tuple(
        (link, tuple(joints_by_child[link]))
        for link in graph.nodes
        if len(joints_by_child.get(link, ())) > 1
    )


def analyze_topology(graph: KinematicGraph) -> TopologyReport:
    """Bundle roots, components, cycles, dangling references and multi-parent links."""
    return TopologyReport(
        roots=find_roots(graph),
        components=find_components(graph),
        cycles=find_cycles(graph),
        dangling=find_dangling(graph),
        multi_parent=find_multi_parent(graph),
    )
