"""Structural diff between two Documents.

Differences are computed on the typed model, never on text, so formatting
and sibling order do not show up. Links, joints, materials, visuals and
collisions are matched by name and occurrence; an unmatched removal and
addition of a link, joint or material that differ only in their name are
reported as a rename. Origins compare by the rigid transform they
describe, and opaque fragments compare as a multiset of their canonical
serialization within each container.
"""

import dataclasses
import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Tuple

from .core import (
    ROBOT_PATH,
    Axis,
    DiffEntry,
    DiffKind,
    Document,
    Joint,
    OpaqueGeometry,
    Origin,
    element_path,
    geometry_kind,
)
from .core.walk import node_label
from .formatter import serialize_opaque
from .transforms import se3

logger = logging.getLogger(__name__)

PREAMBLE_PATH = "/#preamble"
POSTAMBLE_PATH = "/#postamble"

# Derived bookkeeping, not content.
_SKIPPED_FIELDS = ("missing", "issues")


class _Collector:
    def __init__(self):
        self.entries: List[DiffEntry] = []

    def added(self, path: str, value) -> None:
        self.entries.append(DiffEntry(kind=DiffKind.ADDED, path=path, after=value))

    def removed(self, path: str, value) -> None:
        self.entries.append(DiffEntry(kind=DiffKind.REMOVED, path=path, before=value))

    def modified(self, path: str, before, after) -> None:
        self.entries.append(DiffEntry(kind=DiffKind.MODIFIED, path=path, before=before, after=after))


def _compare_attributes(out: _Collector, path: str, before, after) -> None:
    old, new = dict(before), dict(after)
    for key, value in old.items():
        if key not in new:
            out.removed(f"{path}/@{key}", value)
        elif new[key] != value:
            out.modified(f"{path}/@{key}", value, new[key])
    for key, value in new.items():
        if key not in old:
            out.added(f"{path}/@{key}", value)


def _compare_extensions(out: _Collector, path: str, before, after) -> None:
    def bag(extensions):
        return Counter(
            (node_label(anchored.node), serialize_opaque(anchored.node, canonical=True))
            for anchored in extensions
        )

    old, new = bag(before), bag(after)
    for (label, text), count in sorted((old - new).items()):
        for _ in range(count):
            out.removed(f"{path}/{label}", text)
    for (label, text), count in sorted((new - old).items()):
        for _ in range(count):
            out.added(f"{path}/{label}", text)


def _compare_origin(out: _Collector, path: str, before: Optional[Origin], after: Optional[Origin]) -> None:
    old, new = before or Origin(), after or Origin()
    translation, rotation = se3.origin_changes(before, after)
    if translation:
        out.modified(f"{path}/@xyz", old.effective_xyz, new.effective_xyz)
    if rotation:
        out.modified(f"{path}/@rpy", old.effective_rpy, new.effective_rpy)
    _compare_attributes(out, path, old.extra_attributes, new.extra_attributes)


def _compare_axis(out: _Collector, path: str, before: Optional[Axis], after: Optional[Axis]) -> None:
    old, new = before or Axis(), after or Axis()
    if old.effective_xyz != new.effective_xyz:
        out.modified(f"{path}/@xyz", old.effective_xyz, new.effective_xyz)
    _compare_attributes(out, path, old.extra_attributes, new.extra_attributes)


def _compare_geometry(out: _Collector, path: str, before, after) -> None:
    if before is None or after is None:
        _compare_presence(out, path, before, after)
    elif type(before) is not type(after):
        out.modified(path, geometry_kind(before), geometry_kind(after))
    elif isinstance(before, OpaqueGeometry):
        old = serialize_opaque(before.node, canonical=True)
        new = serialize_opaque(after.node, canonical=True)
        if old != new:
            out.modified(path, old, new)
    else:
        _compare_fields(out, f"{path}/{geometry_kind(before)}", before, after)


def _compare_presence(out: _Collector, path: str, before, after) -> bool:
    """Report a value present on one side only; True when both are present."""
    if before is None and after is not None:
        out.added(path, after)
    elif before is not None and after is None:
        out.removed(path, before)
    return before is not None and after is not None


def _compare_sequence(out: _Collector, path: str, tag: str, before, after) -> None:
    """Visuals and collisions match by (name, occurrence).

    Unnamed items share the key ``None``, so they match by their position
    among the unnamed items. Paths carry the before index for matched and
    removed items, the after index for added ones.
    """
    old, new = _keyed(before), _keyed(after)
    for key, (index, element) in old.items():
        item_path = f"{path}/{tag}[{index}]"
        if key in new:
            _compare_fields(out, item_path, element, new[key][1])
        else:
            out.removed(item_path, element)
    for key, (index, element) in new.items():
        if key not in old:
            out.added(f"{path}/{tag}[{index}]", element)


def _compare_fragments(out: _Collector, path: str, before, after) -> None:
    old = Counter(serialize_opaque(node, canonical=True) for node in before)
    new = Counter(serialize_opaque(node, canonical=True) for node in after)
    for text in sorted((old - new).elements()):
        out.removed(path, text)
    for text in sorted((new - old).elements()):
        out.added(path, text)


def _compare_fields(out: _Collector, path: str, before, after) -> None:
    """Field-by-field comparison of two model values of the same type."""
    for field in dataclasses.fields(before):
        name = field.name
        old, new = getattr(before, name), getattr(after, name)
        if name in _SKIPPED_FIELDS:
            continue
        if name == "extra_attributes":
            _compare_attributes(out, path, old, new)
        elif name == "extensions":
            _compare_extensions(out, path, old, new)
        elif name == "origin":
            _compare_origin(out, f"{path}/origin", old, new)
        elif name == "axis":
            _compare_axis(out, f"{path}/axis", old, new)
        elif name == "geometry":
            _compare_geometry(out, f"{path}/geometry", old, new)
        elif name in ("visuals", "collisions"):
            _compare_sequence(out, path, name[:-1], old, new)
        elif dataclasses.is_dataclass(old) or dataclasses.is_dataclass(new):
            if _compare_presence(out, f"{path}/{name}", old, new):
                _compare_fields(out, f"{path}/{name}", old, new)
        elif isinstance(before, Joint) and name in ("parent", "child"):
            if old != new:
                out.modified(f"{path}/{name}/@link", old, new)
        elif name in ("parent_attributes", "child_attributes"):
            _compare_attributes(out, f"{path}/{name.split('_')[0]}", old, new)
        elif old != new:
            out.modified(f"{path}/@{name}", old, new)


def _keyed(elements) -> Dict[Tuple[Optional[str], int], Tuple[int, object]]:
    """Key elements by (name, occurrence of that name)."""
    seen: Dict[Optional[str], int] = defaultdict(int)
    keyed = {}
    for index, element in enumerate(elements):
        keyed[(element.name, seen[element.name])] = (index, element)
        seen[element.name] += 1
    return keyed


def _differs_only_by_name(before, after) -> bool:
    scratch = _Collector()
    _compare_fields(scratch, "", before, after.replace(name=before.name))
    return not scratch.entries


def _compare_named(out: _Collector, kind: str, before, after) -> None:
    old, new = _keyed(before), _keyed(after)
    for key, (index, element) in old.items():
        if key in new:
            _compare_fields(out, element_path(kind, element.name, index), element, new[key][1])

    removed = [old[key] for key in old if key not in new]
    added = [new[key] for key in new if key not in old]
    for index, element in removed:
        partner = next(
            (pair for pair in added if _differs_only_by_name(element, pair[1])),
            None,
        )
        path = element_path(kind, element.name, index)
        if partner is None:
            out.removed(path, element)
        else:
            added.remove(partner)
            out.modified(f"{path}/@name", element.name, partner[1].name)
    for index, element in added:
        out.added(element_path(kind, element.name, index), element)


def diff(before: Document, after: Document) -> Tuple[DiffEntry, ...]:
    """Compute the structural differences between two documents.

    Args:
        before: The original document.
        after: The changed document.

    Returns:
        Diff entries sorted by (path, kind); empty when the documents are
        semantically equal.
    """
    out = _Collector()
    if before.name != after.name:
        out.modified(f"{ROBOT_PATH}/@name", before.name, after.name)
    _compare_attributes(out, ROBOT_PATH, before.extra_attributes, after.extra_attributes)
    _compare_extensions(out, ROBOT_PATH, before.extensions, after.extensions)

    _compare_fragments(out, PREAMBLE_PATH, before.preamble, after.preamble)
    _compare_fragments(out, POSTAMBLE_PATH, before.postamble, after.postamble)

    _compare_named(out, "material", before.materials, after.materials)
    _compare_named(out, "link", before.links, after.links)
    _compare_named(out, "joint", before.joints, after.joints)

    entries = tuple(sorted(out.entries, key=lambda e: (e.path, e.kind.value)))
    logger.debug("Diff found %d difference(s)", len(entries))
    return entries
