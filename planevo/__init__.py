"""
Plane/Infinity Visual Odometry Package
======================================

This package estimates the ego-motion of a camera moving over a flat ground
plane from a single video stream.
"""

# Import core components to make them available at the root level
from .core.motion_estimator import PlaneInfinityOdometry
from .core.config import OdometryConfig
from .core.calibration import CameraCalibration
from .core.plane_projection import CameraPlaneProjection, plane_to_camera_from_height
from .core.tracker import PointTrack, PointTracker, KltPointTracker

# Import estimation components
from .models.far_rotation import maximize_count_in_spread
from .models.plane_motion import PlanePtPixel, RansacPlaneMotion

__all__ = [
    # Core components
    'PlaneInfinityOdometry',
    'OdometryConfig',
    'CameraCalibration',
    'CameraPlaneProjection',
    'plane_to_camera_from_height',
    'PointTrack',
    'PointTracker',
    'KltPointTracker',

    # Estimation components
    'maximize_count_in_spread',
    'PlanePtPixel',
    'RansacPlaneMotion',
]
