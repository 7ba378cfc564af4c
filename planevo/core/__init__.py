"""
Core motion estimation components.

This package provides core components for motion estimation, including:
- PlaneInfinityOdometry: Main component estimating motion from tracked points
- PoseAccumulator: Maintains the key frame pose chain and trajectory
- TrackManager: Spawns, annotates and retires tracks
- KltPointTracker: Optical flow point tracker
- OdometryConfig: Configuration parameters for motion estimation
"""

from .motion_estimator import PlaneInfinityOdometry
from .trajectory import PoseAccumulator
from .keyframe import TrackManager, TrackAnnotation
from .tracker import PointTrack, PointTracker, KltPointTracker
from .calibration import CameraCalibration
from .plane_projection import CameraPlaneProjection, plane_to_camera_from_height
from .config import OdometryConfig

__all__ = [
    'PlaneInfinityOdometry',
    'PoseAccumulator',
    'TrackManager',
    'TrackAnnotation',
    'PointTrack',
    'PointTracker',
    'KltPointTracker',
    'CameraCalibration',
    'CameraPlaneProjection',
    'plane_to_camera_from_height',
    'OdometryConfig'
]
