"""Shared fixtures for the urdfix test-suite."""

from pathlib import Path

import hypothesis
import pytest

from urdfix.io import load_document

# Use hypothesis profile for CI
hypothesis.settings.register_profile("ci", max_examples=10, deadline=None)

FIXTURES = Path(__file__).parent / "fixtures"


def robot(body: str, name: str = "test_robot") -> str:
    """Wrap URDF body elements in a ``<robot>`` element."""
    return f'<?xml version="1.0"?>\n<robot name="{name}">\n{body}\n</robot>\n'


def by_name(elements, name: str):
    """First element of a tuple of links, joints or materials with ``name``."""
    return next(element for element in elements if element.name == name)


@pytest.fixture
def arm_path() -> Path:
    return FIXTURES / "simple_arm.urdf"


@pytest.fixture
def arm_text(arm_path) -> str:
    return arm_path.read_text(encoding="utf-8")


@pytest.fixture
def arm(arm_path):
    return load_document(arm_path)
