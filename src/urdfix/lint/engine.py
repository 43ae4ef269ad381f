"""Lint rule engine.

A rule is a pure function of (Document, KinematicGraph) returning
diagnostics. Rules never see each other's output, so the engine may run
them in any order, or concurrently on a thread pool; the merged result is
made deterministic by sorting, not by coordination.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Sequence, Tuple

from urdfix.config import DEFAULT_CONFIG, UrdfixConfig
from urdfix.core import Diagnostic, Document, Severity, sort_diagnostics
from urdfix.graph import KinematicGraph, build_graph

from .rules import DEFAULT_RULES, LintRule

logger = logging.getLogger(__name__)


def run_rules(
    document: Document,
    graph: KinematicGraph,
    rules: Sequence[LintRule] = DEFAULT_RULES,
    max_workers: int = 1,
) -> Tuple[Diagnostic, ...]:
    """Run every rule and merge the results in presentation order.

    Args:
        document: The document under inspection.
        graph: Its kinematic graph.
        rules: The rules to run.
        max_workers: Threads to run rules on; 1 runs them inline.

    Returns:
        Diagnostics sorted by (severity descending, path, code).
    """
    if max_workers > 1 and len(rules) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(lambda rule: rule(document, graph), rules))
    else:
        results = [rule(document, graph) for rule in rules]

    for rule, found in zip(rules, results):
        if found:
            logger.debug("Rule %s reported %d diagnostic(s)", rule.code, len(found))
    return sort_diagnostics(d for found in results for d in found)


def elevate_warnings(diagnostics: Iterable[Diagnostic]) -> Tuple[Diagnostic, ...]:
    """Strict mode: report every warning as an error."""
    return sort_diagnostics(
        d.replace(severity=Severity.ERROR) if d.severity == Severity.WARNING else d
        for d in diagnostics
    )


def lint(
    document: Document,
    config: Optional[UrdfixConfig] = None,
    rules: Optional[Sequence[LintRule]] = None,
) -> Tuple[Diagnostic, ...]:
    """Lint a document.

    Args:
        document: The document to lint.
        config: Run configuration; ``strict`` elevates warnings to errors
                and ``lint_workers`` sets the thread count.
        rules: Rules to run. Defaults to ``DEFAULT_RULES``.

    Returns:
        Sorted diagnostics.
    """
    config = config or DEFAULT_CONFIG
    rules = DEFAULT_RULES if rules is None else tuple(rules)
    graph = build_graph(document)
    diagnostics = run_rules(document, graph, rules, max_workers=config.lint_workers)
    if config.strict:
        diagnostics = elevate_warnings(diagnostics)
    logger.debug("Lint finished with %d diagnostic(s)", len(diagnostics))
    return diagnostics


def has_issues(diagnostics: Iterable[Diagnostic]) -> bool:
    """Whether any diagnostic is a warning or an error."""
    return any(d.severity >= Severity.WARNING for d in diagnostics)
