"""Built-in fix passes.

A pass takes the current Document (plus, when it asks for them, lint
diagnostics re-evaluated against that Document) and returns a new Document
with a log of what it changed. Every pass is idempotent on its own output.
"""

import dataclasses
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from flax import struct

from urdfix.config import UrdfixConfig
from urdfix.core import (
    Diagnostic,
    Document,
    FixEntry,
    LoweringIssue,
    OpaqueElement,
    OpaqueText,
    Severity,
    element_path,
)
from urdfix.core.walk import map_opaque
from urdfix.lint.rules import VALID_NAME


@struct.dataclass
class PassResult:
    document: Document
    log: Tuple[FixEntry, ...] = struct.field(pytree_node=False, default=())
    unresolved: Tuple[Diagnostic, ...] = struct.field(pytree_node=False, default=())


PassFn = Callable[[Document, Sequence[Diagnostic], UrdfixConfig], PassResult]


@struct.dataclass
class FixPass:
    """A named document transformation.

    Attributes:
        name: Pass name used in logs and on the command line.
        apply: ``apply(document, diagnostics, config) -> PassResult``.
        needs_diagnostics: Whether the pipeline must lint the current
                           document before running the pass.
    """
    name: str = struct.field(pytree_node=False)
    apply: PassFn = struct.field(pytree_node=False)
    needs_diagnostics: bool = struct.field(pytree_node=False, default=False)


def completeness(value) -> int:
    """Number of populated fields in a model value, counted recursively."""
    if value is None or value == ():
        return 0
    if isinstance(value, tuple):
        return sum(max(completeness(item), 1) for item in value)
    if dataclasses.is_dataclass(value):
        return 1 + sum(
            completeness(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if f.name not in ("name", "missing")
        )
    return 1


IndexMap = Dict[int, Optional[int]]


def _deduplicate(elements: tuple, kind: str, policy: str) -> Tuple[tuple, List[FixEntry], IndexMap]:
    """Drop repeated names; also return where each old index went (None if dropped)."""
    groups: Dict[str, List[int]] = defaultdict(list)
    for index, element in enumerate(elements):
        if element.name is not None:
            groups[element.name].append(index)

    survivors = {}
    kept_as = {}
    vacated = set()
    log = []
    for name, indices in groups.items():
        if len(indices) < 2:
            continue
        keep = indices[0]
        if policy == "most_complete":
            # max() returns the first maximal index, so ties go to the earliest.
            keep = max(indices, key=lambda i: completeness(elements[i]))
        # The survivor always takes the first occurrence's slot.
        survivors[indices[0]] = elements[keep]
        kept_as[indices[0]] = keep
        vacated.update(indices[1:])
        log.extend(
            FixEntry(
                pass_name="deduplicate",
                path=element_path(kind, name, index),
                description=f"Removed duplicate {kind} '{name}'",
            )
            for index in indices
            if index != keep
        )

    slots = [index for index in range(len(elements)) if index not in vacated]
    mapping: IndexMap = {index: None for index in vacated}
    for slot, index in enumerate(slots):
        if index in kept_as:
            mapping[index] = None
            mapping[kept_as[index]] = slot
        else:
            mapping[index] = slot
    result = tuple(survivors.get(index, elements[index]) for index in slots)
    return result, log, mapping


def _relocate_issues(
    issues: Tuple[LoweringIssue, ...],
    kind: str,
    before: tuple,
    after: tuple,
    mapping: IndexMap,
) -> Tuple[LoweringIssue, ...]:
    """Follow a rewrite of one element kind in the lowering issues.

    Issues owned by a dropped element are dropped. The rest are re-pointed
    at their element's new index and name.
    """
    relocated = []
    for issue in issues:
        if issue.owner is None or issue.owner[0] != kind or issue.owner[1] not in mapping:
            relocated.append(issue)
            continue
        old = issue.owner[1]
        new = mapping[old]
        if new is None:
            continue
        path = issue.path
        old_prefix = element_path(kind, before[old].name, old)
        if path == old_prefix or path.startswith(old_prefix + "/"):
            path = element_path(kind, after[new].name, new) + path[len(old_prefix):]
        relocated.append(issue.replace(path=path, owner=(kind, new)))
    return tuple(relocated)


def deduplicate(document: Document, diagnostics: Sequence[Diagnostic], config: UrdfixConfig) -> PassResult:
    """Keep one element per name and drop the lowering issues of the rest."""
    updates = {}
    log = []
    issues = document.issues
    for kind, field in (("link", "links"), ("joint", "joints"), ("material", "materials")):
        before = getattr(document, field)
        after, kind_log, mapping = _deduplicate(before, kind, config.duplicate_policy)
        issues = _relocate_issues(issues, kind, before, after, mapping)
        updates[field] = after
        log.extend(kind_log)
    return PassResult(document=document.replace(issues=issues, **updates), log=tuple(log))


def remove_unused_materials(document: Document, diagnostics: Sequence[Diagnostic], config: UrdfixConfig) -> PassResult:
    used = {
        visual.material.name
        for link in document.links
        for visual in link.visuals
        if visual.material is not None
    }
    kept = []
    mapping: IndexMap = {}
    log = []
    for index, material in enumerate(document.materials):
        if material.name is not None and material.name not in used:
            mapping[index] = None
            log.append(FixEntry(
                pass_name="remove-unused-materials",
                path=element_path("material", material.name, index),
                description=f"Removed unused material '{material.name}'",
            ))
        else:
            mapping[index] = len(kept)
            kept.append(material)
    materials = tuple(kept)
    issues = _relocate_issues(document.issues, "material", document.materials, materials, mapping)
    return PassResult(document=document.replace(materials=materials, issues=issues), log=tuple(log))


def fix_name(name: str) -> str:
    """Rewrite a name into a lowercase identifier.

    Letters, digits and underscores are kept (lowercased), whitespace and
    ``-`` become ``_`` except in first position, anything else is dropped.
    A result starting with a digit gets a ``_`` prefix; an empty result
    becomes ``unnamed``.
    """
    chars = []
    for position, char in enumerate(name):
        if char.isascii() and (char.isalnum() or char == "_"):
            chars.append(char.lower())
        elif position > 0 and (char.isspace() or char == "-"):
            chars.append("_")
    fixed = "".join(chars)
    if not fixed:
        return "unnamed"
    if fixed[0].isdigit():
        return "_" + fixed
    return fixed


def _renames(elements: tuple) -> Dict[str, str]:
    """New names for every invalid name, unique among names of that kind."""
    taken = {element.name for element in elements if element.name is not None}
    renames = {}
    for element in elements:
        name = element.name
        if name is None or name in renames or VALID_NAME.fullmatch(name):
            continue
        base = fix_name(name)
        candidate, suffix = base, 1
        while candidate in taken:
            suffix += 1
            candidate = f"{base}_{suffix}"
        taken.add(candidate)
        renames[name] = candidate
    return renames


def fix_naming(document: Document, diagnostics: Sequence[Diagnostic], config: UrdfixConfig) -> PassResult:
    """Rename links and joints whose names are not identifiers.

    Joint ``parent``/``child`` references follow renamed links and ``mimic``
    references follow renamed joints. A fixed name that is already taken
    gets a ``_2``, ``_3``... suffix, so the pass never creates duplicates.
    """
    link_renames = _renames(document.links)
    joint_renames = _renames(document.joints)
    if not link_renames and not joint_renames:
        return PassResult(document=document)

    log = []
    links = []
    for index, link in enumerate(document.links):
        if link.name in link_renames:
            new = link_renames[link.name]
            log.append(FixEntry(
                "fix-naming", element_path("link", link.name, index), f"Renamed link '{link.name}' to '{new}'"
            ))
            link = link.replace(name=new)
        links.append(link)

    joints = []
    for index, joint in enumerate(document.joints):
        updates = {}
        if joint.name in joint_renames:
            updates["name"] = joint_renames[joint.name]
            log.append(FixEntry(
                "fix-naming",
                element_path("joint", joint.name, index),
                f"Renamed joint '{joint.name}' to '{updates['name']}'",
            ))
        if joint.parent in link_renames:
            updates["parent"] = link_renames[joint.parent]
        if joint.child in link_renames:
            updates["child"] = link_renames[joint.child]
        if joint.mimic is not None and joint.mimic.joint in joint_renames:
            updates["mimic"] = joint.mimic.replace(joint=joint_renames[joint.mimic.joint])
        joints.append(joint.replace(**updates) if updates else joint)

    issues = document.issues
    for kind, before, after in (("link", document.links, links), ("joint", document.joints, joints)):
        identity: IndexMap = {index: index for index in range(len(before))}
        issues = _relocate_issues(issues, kind, before, tuple(after), identity)
    return PassResult(
        document=document.replace(links=tuple(links), joints=tuple(joints), issues=issues),
        log=tuple(log),
    )


def normalize_whitespace(document: Document, diagnostics: Sequence[Diagnostic], config: UrdfixConfig) -> PassResult:
    log = []

    def collapse(node, path) -> Optional[object]:
        if isinstance(node, OpaqueElement) and node.is_whitespace_only:
            log.append(FixEntry("normalize-whitespace", path, "Collapsed whitespace-only text"))
            return node.replace(text=None)
        if isinstance(node, OpaqueText) and not node.text.strip():
            log.append(FixEntry("normalize-whitespace", path, "Removed whitespace-only text node"))
            return None
        return node

    return PassResult(document=map_opaque(document, collapse), log=tuple(log))


def canonicalize_empty_elements(document: Document, diagnostics: Sequence[Diagnostic], config: UrdfixConfig) -> PassResult:
    log = []

    def close(node, path):
        if (
            isinstance(node, OpaqueElement)
            and not node.children
            and node.text is None
            and not node.self_closing
        ):
            log.append(FixEntry("canonicalize-empty-elements", path, "Marked empty element self-closing"))
            return node.replace(self_closing=True)
        return node

    return PassResult(document=map_opaque(document, close), log=tuple(log))


def prune_unresolvable(document: Document, diagnostics: Sequence[Diagnostic], config: UrdfixConfig) -> PassResult:
    """Report dangling joints as unresolved; the joints themselves are kept."""
    unresolved = []
    log = []
    for diagnostic in diagnostics:
        if diagnostic.code != "DanglingReference":
            continue
        unresolved.append(Diagnostic(
            severity=Severity.ERROR,
            code="UnresolvableFix",
            message=f"{diagnostic.message}; left unresolved",
            path=diagnostic.path,
        ))
        log.append(FixEntry("prune-unresolvable", diagnostic.path, "Left dangling reference unresolved"))
    return PassResult(document=document, log=tuple(log), unresolved=tuple(unresolved))


DEDUPLICATE = FixPass("deduplicate", deduplicate)
REMOVE_UNUSED_MATERIALS = FixPass("remove-unused-materials", remove_unused_materials)
FIX_NAMING = FixPass("fix-naming", fix_naming)
NORMALIZE_WHITESPACE = FixPass("normalize-whitespace", normalize_whitespace)
CANONICALIZE_EMPTY_ELEMENTS = FixPass("canonicalize-empty-elements", canonicalize_empty_elements)
PRUNE_UNRESOLVABLE = FixPass("prune-unresolvable", prune_unresolvable, needs_diagnostics=True)

DEFAULT_PASSES: Tuple[FixPass, ...] = (
    DEDUPLICATE,
    NORMALIZE_WHITESPACE,
    CANONICALIZE_EMPTY_ELEMENTS,
    PRUNE_UNRESOLVABLE,
)

PASSES: Dict[str, FixPass] = {
    fix_pass.name: fix_pass
    for fix_pass in (
        DEDUPLICATE,
        REMOVE_UNUSED_MATERIALS,
        FIX_NAMING,
        NORMALIZE_WHITESPACE,
        CANONICALIZE_EMPTY_ELEMENTS,
        PRUNE_UNRESOLVABLE,
    )
}
