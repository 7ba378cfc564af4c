"""
Utility functions for rigid transforms on the ground plane.

2D rigid transforms are stored as 3x3 homogeneous matrices and 3D rigid
transforms as 4x4 homogeneous matrices. A transform named ``a_to_b`` maps
points expressed in frame ``a`` into frame ``b``, so applying ``a_to_b``
and then ``b_to_c`` is the product ``b_to_c @ a_to_b``.
"""

import math

import numpy as np


def se2(x=0.0, y=0.0, yaw=0.0):
    """
    Build a 2D rigid transform.

    Args:
        x: Translation along x
        y: Translation along y
        yaw: Rotation angle in radians

    Returns:
        T: 3x3 homogeneous transform
    """
    return se2_from_cs(x, y, math.cos(yaw), math.sin(yaw))


def se2_from_cs(x, y, c, s):
    """Build a 2D rigid transform from the cosine and sine of its rotation"""
    return np.array([
        [c, -s, x],
        [s, c, y],
        [0.0, 0.0, 1.0]
    ], dtype=np.float64)


def se2_inverse(T):
    """
    Invert a 2D rigid transform.

    Args:
        T: 3x3 homogeneous transform

    Returns:
        T_inv: Inverse transform
    """
    R = T[:2, :2]
    t = T[:2, 2]
    T_inv = np.eye(3)
    T_inv[:2, :2] = R.T
    T_inv[:2, 2] = -R.T @ t
    return T_inv


def se2_yaw(T):
    """Rotation angle of a 2D rigid transform"""
    return math.atan2(T[1, 0], T[0, 0])


def se2_set_yaw(T, yaw):
    """
    Replace the rotation of a 2D transform in place, keeping its translation.

    Args:
        T: 3x3 homogeneous transform, modified
        yaw: New rotation angle in radians

    Returns:
        T: The same array
    """
    c = math.cos(yaw)
    s = math.sin(yaw)
    T[0, 0] = c
    T[0, 1] = -s
    T[1, 0] = s
    T[1, 1] = c
    return T


def se2_transform_points(T, points):
    """
    Apply a 2D rigid transform to points.

    Args:
        T: 3x3 homogeneous transform
        points: (2,) or (N,2) array

    Returns:
        Transformed points with the same shape
    """
    points = np.asarray(points, dtype=np.float64)
    return points @ T[:2, :2].T + T[:2, 2]


def rotate_vector(c, s, v):
    """Rotate a 2D vector by the rotation with cosine c and sine s"""
    return np.array([c * v[0] - s * v[1], s * v[0] + c * v[1]])


def fit_se2(src, dst):
    """
    Least-squares 2D rigid transform mapping src points onto dst points.

    Args:
        src: (N,2) points, N >= 2
        dst: (N,2) points

    Returns:
        T: 3x3 transform with dst ~ T(src)
    """
    src = np.asarray(src, dtype=np.float64)
    dst = np.asarray(dst, dtype=np.float64)

    mean_src = src.mean(axis=0)
    mean_dst = dst.mean(axis=0)
    a = src - mean_src
    b = dst - mean_dst

    # Closed form rotation for the 2D Procrustes problem
    dot = np.sum(a[:, 0] * b[:, 0] + a[:, 1] * b[:, 1])
    cross = np.sum(a[:, 0] * b[:, 1] - a[:, 1] * b[:, 0])
    yaw = math.atan2(cross, dot)

    T = se2(yaw=yaw)
    T[:2, 2] = mean_dst - T[:2, :2] @ mean_src
    return T


def angle_dist(a, b):
    """Absolute distance between two angles on the circle, in [0, pi]"""
    d = math.fmod(abs(a - b), 2.0 * math.pi)
    return 2.0 * math.pi - d if d > math.pi else d


def se3(R, t):
    """Build a 3D rigid transform from a rotation matrix and translation"""
    T = np.eye(4)
    T[:3, :3] = R
    T[:3, 3] = np.asarray(t, dtype=np.float64).reshape(3)
    return T


def se3_inverse(T):
    """Invert a 3D rigid transform"""
    R = T[:3, :3]
    t = T[:3, 3]
    T_inv = np.eye(4)
    T_inv[:3, :3] = R.T
    T_inv[:3, 3] = -R.T @ t
    return T_inv


def lift_se2_to_se3(curr_to_world):
    """
    Convert a 2D ground plane motion into a 3D motion in the plane frame.

    The ground plane is the x-z plane of the 3D plane frame. A 2D point
    (x, y) corresponds to the 3D point (-y, 0, x), so rotation is about the
    plane's y axis and translation has no y component.

    Args:
        curr_to_world: 3x3 2D transform

    Returns:
        T: 4x4 transform from the current plane frame to the world plane frame
    """
    c = curr_to_world[0, 0]
    s = curr_to_world[1, 0]
    tx = curr_to_world[0, 2]
    ty = curr_to_world[1, 2]

    R = np.array([
        [c, 0.0, -s],
        [0.0, 1.0, 0.0],
        [s, 0.0, c]
    ])
    return se3(R, [-ty, 0.0, tx])
