"""
Fusion of the yaw estimates from points on the plane and at infinity.
"""

import math

import numpy as np

from ..core.utils import se2_inverse, se2_set_yaw


def fuse_yaw(close_key_to_curr, close_inlier_count, far_angle, far_inlier_count):
    """
    Weighted vector average of the two yaw estimates.

    Args:
        close_key_to_curr: 3x3 motion estimated from points on the plane
        close_inlier_count: Number of plane inliers, used as its weight
        far_angle: Yaw estimated from points at infinity
        far_inlier_count: Number of far inliers, used as its weight

    Returns:
        yaw: Fused yaw in radians
    """
    c = close_key_to_curr[0, 0]
    s = close_key_to_curr[1, 0]
    if far_inlier_count <= 0:
        return math.atan2(s, c)

    x = c * close_inlier_count + math.cos(far_angle) * far_inlier_count
    y = s * close_inlier_count + math.sin(far_angle) * far_inlier_count
    return math.atan2(y, x)


def fuse_estimates(close_key_to_curr, close_inlier_count, far_angle, far_inlier_count):
    """
    Merge both estimates into the motion from the current frame to the key frame.

    Only the rotation of the plane estimate is replaced, its translation is
    kept as is.

    Returns:
        yaw: Fused yaw of the key to current motion
        curr_to_key: 3x3 transform
    """
    yaw = fuse_yaw(close_key_to_curr, close_inlier_count, far_angle, far_inlier_count)
    key_to_curr = se2_set_yaw(np.array(close_key_to_curr, dtype=np.float64), yaw)
    return yaw, se2_inverse(key_to_curr)
