"""SO(3) rotation helpers in JAX.

Rotations are 3x3 matrices. The URDF roll-pitch-yaw convention is fixed-axis
X-Y-Z, i.e. ``R = Rz(yaw) @ Ry(pitch) @ Rx(roll)``.
"""

import jax
import jax.numpy as jnp

Array = jax.Array


def from_rpy(rpy: Array) -> Array:
    """
    Convert roll-pitch-yaw angles to a rotation matrix.

    Args:
        rpy: (..., 3) array of [roll, pitch, yaw] angles in radians.

    Returns:
        (..., 3, 3) array of rotation matrices.
    """
    roll, pitch, yaw = rpy[..., 0], rpy[..., 1], rpy[..., 2]
    cr, sr = jnp.cos(roll), jnp.sin(roll)
    cp, sp = jnp.cos(pitch), jnp.sin(pitch)
    cy, sy = jnp.cos(yaw), jnp.sin(yaw)

    # Combined rotation: R = R_z * R_y * R_x
    return jnp.stack([
        jnp.stack([cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr], axis=-1),
        jnp.stack([sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr], axis=-1),
        jnp.stack([-sp, cp * sr, cp * cr], axis=-1),
    ], axis=-2)


def angle(R: Array) -> Array:
    """
    Rotation angle of R, in [0, pi].

    Computed with arctan2 of the skew and symmetric parts, which stays
    accurate near the identity where arccos of the trace does not.

    Args:
        R: (..., 3, 3) rotation matrix

    Returns:
        (...,) array of angles in radians
    """
    cos_angle = (jnp.trace(R, axis1=-2, axis2=-1) - 1.0) / 2.0
    skew_part = jnp.stack([
        R[..., 2, 1] - R[..., 1, 2],
        R[..., 0, 2] - R[..., 2, 0],
        R[..., 1, 0] - R[..., 0, 1]
    ], axis=-1)
    sin_angle = jnp.linalg.norm(skew_part, axis=-1) / 2.0
    return jnp.arctan2(sin_angle, cos_angle)


def inverse(R: Array) -> Array:
    """
    Compute inverse of rotation matrix.

    For rotation matrices, the inverse is simply the transpose.

    Args:
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 3, 3) inverse rotation matrix
    """
    return jnp.swapaxes(R, -1, -2)
