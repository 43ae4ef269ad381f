"""Property-based tests over randomly generated robots."""

from collections import Counter

from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import robot
from urdfix.config import UrdfixConfig
from urdfix.diff import diff
from urdfix.fix import fix
from urdfix.formatter import format_document, format_text
from urdfix.io import parse_document
from urdfix.lint import lint

LINK_NAMES = ["a", "b", "c", "d"]
JOINT_NAMES = ["j1", "j2", "j3"]
JOINT_TYPES = ["fixed", "revolute", "continuous", "hinge"]

numbers = st.sampled_from(["0", "0.5", "1.0", "-2", "1e-3", "3.25"])

links = st.builds(
    lambda name, padding, sphere: (
        f'<link name="{name}">'
        + (f"<foo>{padding}</foo>" if padding else "")
        + (f'<visual><geometry><sphere radius="{sphere}"/></geometry></visual>' if sphere else "")
        + "</link>"
    ),
    st.sampled_from(LINK_NAMES),
    st.sampled_from(["", " ", "\n  "]),
    st.one_of(st.none(), numbers),
)

joints = st.builds(
    lambda name, joint_type, parent, child, x: (
        f'<joint name="{name}" type="{joint_type}">'
        f'<parent link="{parent}"/><child link="{child}"/>'
        f'<origin xyz="{x} 0 0"/>'
        "</joint>"
    ),
    st.sampled_from(JOINT_NAMES),
    st.sampled_from(JOINT_TYPES),
    st.sampled_from(LINK_NAMES + ["ghost"]),
    st.sampled_from(LINK_NAMES + ["ghost"]),
    numbers,
)

extras = st.sampled_from([
    "<!-- note -->",
    '<gazebo reference="a"><plugin name="p"><rate>10</rate></plugin></gazebo>',
    '<material name="red"><color rgba="1 0 0 1"/></material>',
    "<gazebo><x>a&#13;b</x></gazebo>",
])

elements = st.lists(st.one_of(links, joints, extras), max_size=10)


def severity_codes(diagnostics):
    # How many cycles a depth-first walk reports depends on visiting order;
    # whether there is one does not.
    counts = Counter((d.severity, d.code) for d in diagnostics if d.code != "CyclicKinematics")
    has_cycle = any(d.code == "CyclicKinematics" for d in diagnostics)
    return counts, has_cycle


@given(elements)
@settings(deadline=None, max_examples=50)
def test_format_is_idempotent(items):
    once = format_text(robot("\n".join(items)))
    assert format_text(once) == once


@given(elements)
@settings(deadline=None, max_examples=50)
def test_format_is_diff_neutral(items):
    document = parse_document(robot("\n".join(items)))
    assert diff(document, parse_document(format_document(document))) == ()


@given(elements, st.sampled_from(["first", "most_complete"]))
@settings(deadline=None, max_examples=50)
def test_fix_is_idempotent(items, policy):
    config = UrdfixConfig.create(duplicate_policy=policy)
    once = fix(parse_document(robot("".join(items))), config)
    twice = fix(once.document, config)
    assert twice.document == once.document
    assert not twice.changed


@given(elements)
@settings(deadline=None, max_examples=50)
def test_fixed_document_has_no_duplicates(items):
    document = fix(parse_document(robot("".join(items)))).document
    codes = {d.code for d in lint(document)}
    assert "DuplicateElementName" not in codes
    assert "RedundantWhitespaceOnly" not in codes


@given(st.lists(st.one_of(links, joints, extras), max_size=8).flatmap(
    lambda items: st.tuples(st.just(items), st.permutations(items))
))
@settings(deadline=None, max_examples=50)
def test_lint_findings_do_not_depend_on_sibling_order(pair):
    items, shuffled = pair
    before = lint(parse_document(robot("".join(items))))
    after = lint(parse_document(robot("".join(shuffled))))
    assert severity_codes(before) == severity_codes(after)


@given(elements)
@settings(deadline=None, max_examples=25)
def test_lint_is_deterministic(items):
    document = parse_document(robot("".join(items)))
    assert lint(document) == lint(document)
    assert lint(document, UrdfixConfig(lint_workers=4)) == lint(document)
