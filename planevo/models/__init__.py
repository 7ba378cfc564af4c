"""
Motion models estimated from each class of track.
"""

from .far_rotation import FarRotationEstimator, maximize_count_in_spread, compute_angle_of_rotation
from .plane_motion import PlaneMotionAdapter, PlanePtPixel, RansacPlaneMotion
from .fusion import fuse_estimates, fuse_yaw

__all__ = [
    'FarRotationEstimator',
    'maximize_count_in_spread',
    'compute_angle_of_rotation',
    'PlaneMotionAdapter',
    'PlanePtPixel',
    'RansacPlaneMotion',
    'fuse_estimates',
    'fuse_yaw'
]
