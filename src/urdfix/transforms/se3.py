"""SE(3) rigid-body transforms for URDF origins.

Origins are compared by the transform they describe rather than by their
written values, so that an absent origin equals an all-zero one and
equivalent roll-pitch-yaw triples compare equal.
"""

from typing import Optional, Tuple

import jax
import jax.numpy as jnp

from urdfix.core.document import Origin

from . import so3

Array = jax.Array

# Tolerances for origin equivalence: metres and radians.
ORIGIN_ATOL = 1e-9
ORIGIN_ANGLE_ATOL = 1e-7


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """
    Construct SE(3) transform from position and rotation.

    Args:
        p: (..., 3) position vector
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 4, 4) homogeneous transformation matrix
    """
    batch_shape = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    p = jnp.broadcast_to(p, batch_shape + (3,))
    R = jnp.broadcast_to(R, batch_shape + (3, 3))

    T = jnp.zeros(batch_shape + (4, 4), dtype=p.dtype)
    T = T.at[..., :3, :3].set(R)
    T = T.at[..., :3, 3].set(p)
    T = T.at[..., 3, 3].set(1.0)

    return T


def from_origin(origin: Optional[Origin]) -> Array:
    """
    Homogeneous transform described by a URDF origin.

    Args:
        origin: The origin, or None for the identity.

    Returns:
        (4, 4) transformation matrix
    """
    if origin is None:
        return jnp.eye(4)
    xyz = jnp.asarray(origin.effective_xyz, dtype=jnp.float64)
    rpy = jnp.asarray(origin.effective_rpy, dtype=jnp.float64)
    return from_position_and_rotation(xyz, so3.from_rpy(rpy))


def inverse(T: Array) -> Array:
    """
    Compute inverse of SE(3) transformation matrix.

    Uses the block structure for efficient computation:
    T^-1 = [[R^T, -R^T @ t], [0, 1]]

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 4, 4) inverse transformation matrix
    """
    R = T[..., :3, :3]
    t = T[..., :3, 3]

    R_inv = so3.inverse(R)
    t_inv = -jnp.einsum("...ij,...j->...i", R_inv, t)

    return from_position_and_rotation(t_inv, R_inv)


def distance(T1: Array, T2: Array) -> Tuple[float, float]:
    """
    Translation and rotation distance between two transforms.

    Args:
        T1: (4, 4) first transformation matrix
        T2: (4, 4) second transformation matrix

    Returns:
        (translation distance, rotation angle in radians)
    """
    delta = jnp.matmul(inverse(T1), T2)
    translation = jnp.linalg.norm(delta[:3, 3])
    rotation = so3.angle(delta[:3, :3])
    return float(translation), float(rotation)


def origin_changes(a: Optional[Origin], b: Optional[Origin]) -> Tuple[bool, bool]:
    """
    Whether two origins differ in translation and in rotation.

    Args:
        a: First origin, None for the identity.
        b: Second origin, None for the identity.

    Returns:
        (translation changed, rotation changed), each beyond its tolerance
    """
    if a == b:
        return False, False
    translation, rotation = distance(from_origin(a), from_origin(b))
    return translation > ORIGIN_ATOL, rotation > ORIGIN_ANGLE_ATOL
