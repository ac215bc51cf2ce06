"""
Quaternion Math Utilities for Flight Control

Quaternion format: [w, x, y, z] where:
- w is the scalar part
- (x, y, z) is the vector part

The controller works in a Y-up world (gravity along -Y). PyBullet is Z-up,
so the helpers at the bottom convert vectors and orientations between the
two frames with a fixed -90 degree rotation about X.
"""

import numpy as np


WORLD_UP = np.array([0.0, 1.0, 0.0])
IDENTITY = np.array([1.0, 0.0, 0.0, 0.0])


def quaternion_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """
    Multiply two quaternions: q1 * q2

    Args:
        q1: First quaternion [w, x, y, z]
        q2: Second quaternion [w, x, y, z]

    Returns:
        Result quaternion [w, x, y, z]
    """
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2

    w = w1*w2 - x1*x2 - y1*y2 - z1*z2
    x = w1*x2 + x1*w2 + y1*z2 - z1*y2
    y = w1*y2 - x1*z2 + y1*w2 + z1*x2
    z = w1*z2 + x1*y2 - y1*x2 + z1*w2

    return np.array([w, x, y, z])


def quaternion_conjugate(q: np.ndarray) -> np.ndarray:
    """Conjugate [w, -x, -y, -z] (inverse for unit quaternions)."""
    return np.array([q[0], -q[1], -q[2], -q[3]])


def quaternion_normalize(q: np.ndarray) -> np.ndarray:
    """
    Normalize quaternion to unit length

    Degenerate (near-zero) quaternions collapse to the identity rotation.
    """
    q = np.asarray(q, dtype=float)
    norm = np.linalg.norm(q)
    if norm > 1e-10:
        return q / norm
    return IDENTITY.copy()


def quaternion_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """
    Build a unit quaternion rotating `angle` radians about `axis`.

    Args:
        axis: Rotation axis [x, y, z] (need not be unit length)
        angle: Rotation angle in radians

    Returns:
        Quaternion [w, x, y, z]
    """
    axis = np.asarray(axis, dtype=float)
    norm = np.linalg.norm(axis)
    if norm < 1e-10:
        return IDENTITY.copy()
    axis = axis / norm
    half = 0.5 * angle
    return np.concatenate(([np.cos(half)], np.sin(half) * axis))


def rotate_vector_by_quaternion(v: np.ndarray, q: np.ndarray) -> np.ndarray:
    """
    Rotate a 3D vector by a quaternion

    v' = q * v * q^(-1)

    Args:
        v: 3D vector [x, y, z]
        q: Quaternion [w, x, y, z]

    Returns:
        Rotated vector [x, y, z]
    """
    v_quat = np.array([0.0, v[0], v[1], v[2]])
    q_inv = quaternion_conjugate(q)
    result = quaternion_multiply(quaternion_multiply(q, v_quat), q_inv)
    return result[1:4]


def body_up(q: np.ndarray) -> np.ndarray:
    """World-space direction of the body's local +Y axis."""
    return rotate_vector_by_quaternion(WORLD_UP, q)


def pybullet_to_quaternion(pb_quat) -> np.ndarray:
    """
    Convert PyBullet quaternion format [x, y, z, w] to [w, x, y, z]
    """
    return np.array([pb_quat[3], pb_quat[0], pb_quat[1], pb_quat[2]], dtype=float)


def quaternion_to_pybullet(q: np.ndarray) -> np.ndarray:
    """
    Convert [w, x, y, z] to PyBullet quaternion format [x, y, z, w]
    """
    return np.array([q[1], q[2], q[3], q[0]], dtype=float)


# ============================================================================
# FRAME CONVERSION (PyBullet Z-up <-> controller Y-up)
# ============================================================================

# Rotation taking Z-up world coordinates to Y-up: (X, Y, Z) -> (X, Z, -Y)
_ZUP_TO_YUP = quaternion_from_axis_angle(np.array([1.0, 0.0, 0.0]), -np.pi / 2)
_YUP_TO_ZUP = quaternion_conjugate(_ZUP_TO_YUP)


def zup_to_yup_vector(v) -> np.ndarray:
    """Map a Z-up world vector into the Y-up frame."""
    x, y, z = v
    return np.array([x, z, -y], dtype=float)


def yup_to_zup_vector(v) -> np.ndarray:
    """Map a Y-up world vector into the Z-up frame."""
    x, y, z = v
    return np.array([x, -z, y], dtype=float)


def zup_to_yup_quaternion(q: np.ndarray) -> np.ndarray:
    """
    Re-express a Z-up world orientation in the Y-up frame.

    q_yup = r * q_zup * r^(-1), with r the Z-up -> Y-up frame rotation, so that
    rotating a Y-up vector by the result matches rotating the Z-up vector.
    """
    return quaternion_normalize(
        quaternion_multiply(quaternion_multiply(_ZUP_TO_YUP, q), _YUP_TO_ZUP)
    )


def yup_to_zup_quaternion(q: np.ndarray) -> np.ndarray:
    """Inverse of zup_to_yup_quaternion()."""
    return quaternion_normalize(
        quaternion_multiply(quaternion_multiply(_YUP_TO_ZUP, q), _ZUP_TO_YUP)
    )
