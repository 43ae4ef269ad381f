"""Sequential fix pipeline."""

import logging
from typing import Optional, Sequence, Tuple, Union

from flax import struct

from urdfix.config import DEFAULT_CONFIG, UrdfixConfig
from urdfix.core import Diagnostic, Document, FixEntry
from urdfix.exceptions import UnknownPassError
from urdfix.lint import lint

from .passes import (
    CANONICALIZE_EMPTY_ELEMENTS,
    DEDUPLICATE,
    FIX_NAMING,
    NORMALIZE_WHITESPACE,
    PASSES,
    PRUNE_UNRESOLVABLE,
    REMOVE_UNUSED_MATERIALS,
    FixPass,
)

logger = logging.getLogger(__name__)


@struct.dataclass
class FixResult:
    """Outcome of a pipeline run.

    Attributes:
        document: The fixed document.
        log: Every applied fix, in pass order.
        unresolved: Problems no pass could safely resolve.
    """
    document: Document
    log: Tuple[FixEntry, ...] = struct.field(pytree_node=False, default=())
    unresolved: Tuple[Diagnostic, ...] = struct.field(pytree_node=False, default=())

    @property
    def changed(self) -> bool:
        return any(entry.pass_name != PRUNE_UNRESOLVABLE.name for entry in self.log)


def default_passes(config: Optional[UrdfixConfig] = None) -> Tuple[FixPass, ...]:
    """The canonical pass order for a configuration."""
    config = config or DEFAULT_CONFIG
    passes = [DEDUPLICATE]
    if config.remove_unused_materials:
        passes.append(REMOVE_UNUSED_MATERIALS)
    if config.fix_naming:
        passes.append(FIX_NAMING)
    passes += [NORMALIZE_WHITESPACE, CANONICALIZE_EMPTY_ELEMENTS, PRUNE_UNRESOLVABLE]
    return tuple(passes)


def resolve_passes(passes: Sequence[Union[str, FixPass]]) -> Tuple[FixPass, ...]:
    """Turn pass names into passes, keeping FixPass values as given.

    Raises:
        UnknownPassError: If a name matches no built-in pass.
    """
    resolved = []
    for item in passes:
        if isinstance(item, FixPass):
            resolved.append(item)
        elif item in PASSES:
            resolved.append(PASSES[item])
        else:
            raise UnknownPassError(
                f"Unknown fix pass '{item}', expected one of: {', '.join(PASSES)}"
            )
    return tuple(resolved)


def fix(
    document: Document,
    config: Optional[UrdfixConfig] = None,
    passes: Optional[Sequence[Union[str, FixPass]]] = None,
) -> FixResult:
    """Run fix passes over a document, in order.

    Args:
        document: The document to fix. It is not modified.
        config: Run configuration (duplicate policy, optional passes).
        passes: Passes or pass names to run. Defaults to
                ``default_passes(config)``.

    Returns:
        FixResult: The fixed document, the fix log and unresolved problems.
    """
    config = config or DEFAULT_CONFIG
    passes = default_passes(config) if passes is None else resolve_passes(passes)

    log = []
    unresolved = []
    for fix_pass in passes:
        diagnostics: Tuple[Diagnostic, ...] = ()
        if fix_pass.needs_diagnostics:
            diagnostics = lint(document, config)
        result = fix_pass.apply(document, diagnostics, config)
        logger.debug(
            "Pass %s: %d fix(es), %d unresolved",
            fix_pass.name, len(result.log), len(result.unresolved),
        )
        document = result.document
        log.extend(result.log)
        unresolved.extend(result.unresolved)
    return FixResult(document=document, log=tuple(log), unresolved=tuple(unresolved))
