"""Structure statistics for a Document.

Counts, joint-type histogram, link property summary, tree depth and the
kinematic chains from every root to every leaf it reaches. Traversals are
iterative and track visited links, so cycles and very deep trees are safe.
"""

from collections import Counter, deque
from typing import Any, Dict, Optional, Tuple

from flax import struct

from .core import Document
from .graph import KinematicGraph, build_graph, find_leaves, find_roots


@struct.dataclass
class LinkProperties:
    with_visual: int = struct.field(pytree_node=False, default=0)
    with_collision: int = struct.field(pytree_node=False, default=0)
    with_inertial: int = struct.field(pytree_node=False, default=0)
    empty: int = struct.field(pytree_node=False, default=0)


@struct.dataclass
class KinematicChain:
    """Links and joints on the path from a root link to a leaf link."""
    name: str = struct.field(pytree_node=False)
    links: Tuple[str, ...] = struct.field(pytree_node=False)
    joints: Tuple[str, ...] = struct.field(pytree_node=False)

    @property
    def length(self) -> int:
        return len(self.joints)


@struct.dataclass
class RobotStats:
    name: Optional[str] = struct.field(pytree_node=False)
    total_links: int = struct.field(pytree_node=False)
    total_joints: int = struct.field(pytree_node=False)
    total_materials: int = struct.field(pytree_node=False)
    joint_types: Tuple[Tuple[str, int], ...] = struct.field(pytree_node=False)
    link_properties: LinkProperties = struct.field(pytree_node=False)
    tree_depth: int = struct.field(pytree_node=False)
    chains: Tuple[KinematicChain, ...] = struct.field(pytree_node=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total_links": self.total_links,
            "total_joints": self.total_joints,
            "total_materials": self.total_materials,
            "joint_types": dict(self.joint_types),
            "link_properties": {
                "with_visual": self.link_properties.with_visual,
                "with_collision": self.link_properties.with_collision,
                "with_inertial": self.link_properties.with_inertial,
                "empty": self.link_properties.empty,
            },
            "tree_depth": self.tree_depth,
            "chains": [
                {"name": c.name, "links": list(c.links), "joints": list(c.joints), "length": c.length}
                for c in self.chains
            ],
        }


def count_joint_types(document: Document) -> Tuple[Tuple[str, int], ...]:
    """Joint type histogram, sorted by type. Untyped joints count as ``unknown``."""
    counts = Counter(joint.type or "unknown" for joint in document.joints)
    return tuple(sorted(counts.items()))


def link_properties(document: Document) -> LinkProperties:
    with_visual = with_collision = with_inertial = empty = 0
    for link in document.links:
        with_visual += bool(link.visuals)
        with_collision += bool(link.collisions)
        with_inertial += link.inertial is not None
        empty += not link.visuals and not link.collisions and link.inertial is None
    return LinkProperties(
        with_visual=with_visual,
        with_collision=with_collision,
        with_inertial=with_inertial,
        empty=empty,
    )


def tree_depth(graph: KinematicGraph) -> int:
    """Number of links on the longest root-to-leaf path (breadth first)."""
    children = graph.children_of()
    depth = 0
    for root in find_roots(graph):
        visited = {root}
        queue = deque([(root, 1)])
        while queue:
            link, level = queue.popleft()
            depth = max(depth, level)
            for edge in children.get(link, []):
                if edge.child not in visited:
                    visited.add(edge.child)
                    queue.append((edge.child, level + 1))
    return depth


def find_chain(graph: KinematicGraph, root: str, leaf: str) -> Optional[KinematicChain]:
    """Depth-first search for a path from ``root`` down to ``leaf``."""
    children = graph.children_of()
    stack = [(root, (root,), ())]
    visited = set()
    while stack:
        link, links, joints = stack.pop()
        if link == leaf:
            return KinematicChain(name=f"{root}_to_{leaf}", links=links, joints=joints)
        if link in visited:
            continue
        visited.add(link)
        for edge in reversed(children.get(link, [])):
            if edge.child not in visited:
                stack.append((edge.child, links + (edge.child,), joints + (edge.joint,)))
    return None


def find_chains(graph: KinematicGraph) -> Tuple[KinematicChain, ...]:
    """Chains for every (root, leaf) pair joined by a path, leaves first.

    A link that is both a root and a leaf forms no chain.
    """
    chains = []
    roots = find_roots(graph)
    for leaf in find_leaves(graph):
        for root in roots:
            if root == leaf:
                continue
            chain = find_chain(graph, root, leaf)
            if chain is not None:
                chains.append(chain)
    return tuple(chains)


def analyze(document: Document) -> RobotStats:
    """Collect structure statistics for a document.

    Args:
        document: The document to analyze.

    Returns:
        RobotStats: Totals, histograms, depth and chains.
    """
    graph = build_graph(document)
    return RobotStats(
        name=document.name,
        total_links=len(document.links),
        total_joints=len(document.joints),
        total_materials=len(document.materials),
        joint_types=count_joint_types(document),
        link_properties=link_properties(document),
        tree_depth=tree_depth(graph),
        chains=find_chains(graph),
    )
