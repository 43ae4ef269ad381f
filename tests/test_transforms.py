"""Tests for the transforms module."""

import jax
import jax.numpy as jnp
import numpy as np
from hypothesis import given, settings
from hypothesis import strategies as st

from urdfix.core import Origin
from urdfix.transforms import se3, so3

angles = st.floats(min_value=-np.pi, max_value=np.pi, allow_nan=False)


# Basic tests
def test_from_rpy_identity():
    """Test from_rpy with zero angles."""
    R = so3.from_rpy(jnp.zeros(3))
    np.testing.assert_allclose(R, jnp.eye(3), rtol=1e-12, atol=1e-12)


def test_from_rpy_yaw():
    """A 90° yaw turns the x-axis into the y-axis."""
    R = so3.from_rpy(jnp.array([0.0, 0.0, jnp.pi / 2]))
    v = R @ jnp.array([1.0, 0.0, 0.0])
    np.testing.assert_allclose(v, jnp.array([0.0, 1.0, 0.0]), rtol=1e-9, atol=1e-9)


def test_from_rpy_roll():
    """A 90° roll turns the y-axis into the z-axis."""
    R = so3.from_rpy(jnp.array([jnp.pi / 2, 0.0, 0.0]))
    v = R @ jnp.array([0.0, 1.0, 0.0])
    np.testing.assert_allclose(v, jnp.array([0.0, 0.0, 1.0]), rtol=1e-9, atol=1e-9)


def test_from_rpy_is_fixed_axis_xyz():
    """R(r, p, y) = Rz(y) @ Ry(p) @ Rx(r)."""
    r, p, y = 0.3, -0.7, 1.1
    Rx = so3.from_rpy(jnp.array([r, 0.0, 0.0]))
    Ry = so3.from_rpy(jnp.array([0.0, p, 0.0]))
    Rz = so3.from_rpy(jnp.array([0.0, 0.0, y]))
    R = so3.from_rpy(jnp.array([r, p, y]))
    np.testing.assert_allclose(R, Rz @ Ry @ Rx, rtol=1e-12, atol=1e-12)


def test_from_rpy_batched():
    rpy = jnp.zeros((4, 3))
    assert so3.from_rpy(rpy).shape == (4, 3, 3)


def test_from_rpy_jit():
    """Test from_rpy is JIT compatible."""
    jitted = jax.jit(so3.from_rpy)
    rpy = jnp.array([0.1, 0.2, 0.3])
    np.testing.assert_allclose(jitted(rpy), so3.from_rpy(rpy), rtol=1e-12, atol=1e-12)


@given(angles, angles, angles)
@settings(deadline=None, max_examples=25)
def test_from_rpy_is_a_rotation(roll, pitch, yaw):
    R = so3.from_rpy(jnp.array([roll, pitch, yaw]))
    np.testing.assert_allclose(R @ R.T, jnp.eye(3), rtol=1e-9, atol=1e-9)
    np.testing.assert_allclose(jnp.linalg.det(R), 1.0, rtol=1e-9, atol=1e-9)


# SO(3) helpers
def test_so3_angle_identity():
    """Test SO(3) angle of the identity is zero."""
    np.testing.assert_allclose(so3.angle(jnp.eye(3)), 0.0, rtol=1e-12, atol=1e-12)


def test_so3_angle():
    R = so3.from_rpy(jnp.array([0.0, 0.0, 0.5]))
    np.testing.assert_allclose(so3.angle(R), 0.5, rtol=1e-9, atol=1e-9)


def test_so3_inverse():
    """Test SO(3) inverse."""
    R = so3.from_rpy(jnp.array([0.1, 0.2, 0.3]))
    np.testing.assert_allclose(R @ so3.inverse(R), jnp.eye(3), rtol=1e-9, atol=1e-9)


# SE(3) tests
def test_se3_from_position_and_rotation():
    """Test SE(3) construction from position and rotation."""
    p = jnp.array([1.0, 2.0, 3.0])
    R = jnp.eye(3)

    T = se3.from_position_and_rotation(p, R)

    expected = jnp.array([[1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 2.0], [0.0, 0.0, 1.0, 3.0], [0.0, 0.0, 0.0, 1.0]])
    np.testing.assert_allclose(T, expected, rtol=1e-12, atol=1e-12)


def test_se3_inverse():
    """Test SE(3) inverse."""
    T = se3.from_origin(Origin(xyz=(0.1, 0.2, 0.3), rpy=(0.05, 0.1, 0.15)))
    np.testing.assert_allclose(T @ se3.inverse(T), jnp.eye(4), rtol=1e-9, atol=1e-9)


def test_from_origin_absent_is_identity():
    np.testing.assert_allclose(se3.from_origin(None), jnp.eye(4))


def test_from_origin_translation():
    T = se3.from_origin(Origin(xyz=(1.0, 2.0, 3.0)))
    np.testing.assert_allclose(T[:3, 3], jnp.array([1.0, 2.0, 3.0]))
    np.testing.assert_allclose(T[:3, :3], jnp.eye(3))


def test_distance():
    translation, rotation = se3.distance(
        se3.from_origin(Origin(xyz=(1.0, 0.0, 0.0))),
        se3.from_origin(Origin(xyz=(1.0, 2.0, 0.0), rpy=(0.0, 0.0, 0.25))),
    )
    assert abs(translation - 2.0) < 1e-9
    assert abs(rotation - 0.25) < 1e-9


def test_absent_origin_equals_zero_origin():
    assert se3.origin_changes(None, Origin(xyz=(0.0, 0.0, 0.0), rpy=(0.0, 0.0, 0.0))) == (False, False)
    assert se3.origin_changes(Origin(), None) == (False, False)


def test_equivalent_rpy_triples():
    assert se3.origin_changes(Origin(rpy=(np.pi, np.pi, np.pi)), None) == (False, False)
    assert se3.origin_changes(Origin(rpy=(0.0, 0.0, np.pi)), Origin(rpy=(0.0, 0.0, -np.pi))) == (False, False)


def test_different_origins():
    assert se3.origin_changes(Origin(xyz=(0.0, 0.0, 1e-6)), None) == (True, False)
    assert se3.origin_changes(Origin(rpy=(0.0, 0.0, 1e-4)), None) == (False, True)


@given(angles, angles, angles)
@settings(deadline=None, max_examples=25)
def test_origin_is_equivalent_to_itself(roll, pitch, yaw):
    origin = Origin(xyz=(1.0, -2.0, 0.5), rpy=(roll, pitch, yaw))
    same = Origin(xyz=(1.0, -2.0, 0.5), rpy=(roll, pitch, yaw), extra_attributes=(("note", "x"),))
    assert se3.origin_changes(origin, same) == (False, False)
