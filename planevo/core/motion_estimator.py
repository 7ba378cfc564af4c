"""
Main motion estimation component for plane/infinity visual odometry.
"""

import logging
import time

from .config import OdometryConfig
from .calibration import CameraCalibration
from .plane_projection import CameraPlaneProjection
from .tracker import KltPointTracker
from .keyframe import TrackManager
from .trajectory import PoseAccumulator
from .utils import se2_yaw

from ..filters.track_classifier import TrackClassifier
from ..models.far_rotation import FarRotationEstimator
from ..models.plane_motion import PlaneMotionAdapter, RansacPlaneMotion
from ..models.fusion import fuse_estimates

logger = logging.getLogger(__name__)


class PlaneInfinityOdometry:
    """
    Estimates camera ego-motion from a monocular image sequence by assuming
    the camera views a flat ground plane and that points off the plane are at
    infinity.

    Points on the plane give rotation and translation, points at infinity
    give rotation only. The two yaw estimates are merged with a weighted
    vector average. Motion is estimated in 2D on the plane and can be
    converted into 3D.

    A track is dropped once it has not been an inlier for more than
    ``threshold_retire`` frames. New tracks are spawned, and the key frame
    moved to the current frame, when the plane inlier count falls below
    ``threshold_add``.
    """

    def __init__(self, config=None, tracker=None, plane_fitter=None):
        """
        Initialize the odometry.

        Args:
            config: Optional OdometryConfig object
            tracker: Optional PointTracker, KltPointTracker by default
            plane_fitter: Optional robust fitter for plane motion,
                RansacPlaneMotion by default
        """
        self.config = config if config is not None else OdometryConfig()

        self.projection = CameraPlaneProjection()
        self.tracker = tracker if tracker is not None else KltPointTracker(self.config)
        if plane_fitter is None:
            plane_fitter = RansacPlaneMotion(self.projection, self.config)

        # Motion components
        self.track_manager = TrackManager(self.tracker, self.projection, self.config)
        self.classifier = TrackClassifier(self.projection, self.config)
        self.far_estimator = FarRotationEstimator()
        self.plane_fitter = plane_fitter
        self.plane_motion = PlaneMotionAdapter(plane_fitter)
        self.poses = PoseAccumulator(self.config)

        # Calibration
        self.calibration = None
        self.threshold_far_angle_error = 0.0
        self._threshold_pixel_error = None

        # Frame state
        self.tick = 0
        self.first = True

        # Statistics
        self.far_angle = 0.0
        self.far_inlier_count = 0
        self.close_inlier_count = 0
        self.dropped_count = 0
        self.spawned_count = 0
        self.timing = {}

    def set_intrinsic(self, camera_matrix, dist_coeffs=None):
        """
        Set the camera's intrinsic parameters. Can be called at any time.

        Args:
            camera_matrix: CameraCalibration or camera intrinsic matrix (3x3)
            dist_coeffs: Distortion coefficients, ignored for a CameraCalibration
        """
        if isinstance(camera_matrix, CameraCalibration):
            self.calibration = camera_matrix
        else:
            self.calibration = CameraCalibration(camera_matrix, dist_coeffs)
        self.projection.set_intrinsic(self.calibration)
        self._update_thresholds()

    def set_extrinsic(self, plane_to_camera):
        """
        Set the camera's extrinsic parameters. Can be called at any time.

        Args:
            plane_to_camera: 4x4 transform from the plane to the camera
        """
        self.projection.set_plane_to_camera(plane_to_camera, True)
        self.poses.set_plane_to_camera(self.projection.plane_to_camera)

    def set_threshold_pixel_error(self, pixel_error):
        """
        Set the maximum observation error, in pixels, of an inlier.

        Args:
            pixel_error: Error threshold in pixels
        """
        self.config.threshold_pixel_error = pixel_error
        if self.calibration is not None:
            self._update_thresholds()

    def _update_thresholds(self):
        # Angle change caused by a pixel error at the image center. Towards
        # the image edge the same angle moves more pixels.
        self.threshold_far_angle_error = self.calibration.angle_error(
            self.config.threshold_pixel_error
        )
        self.far_estimator.set_threshold(self.threshold_far_angle_error)
        self._threshold_pixel_error = self.config.threshold_pixel_error

    def is_strict_far(self):
        return self.config.strict_far

    def set_strict_far(self, strict_far):
        self.config.strict_far = bool(strict_far)

    def get_tracker(self):
        return self.tracker

    def get_tick(self):
        """Number of frames processed since the last reset"""
        return self.tick

    def reset(self):
        """Reset the odometry into its initial state"""
        self.tick = 0
        self.first = True
        self.tracker.reset()
        if hasattr(self.plane_fitter, 'reset'):
            self.plane_fitter.reset()
        self.track_manager.clear()
        self.poses.reset()
        self.far_angle = 0.0
        self.far_inlier_count = 0
        self.close_inlier_count = 0
        self.timing = {}

    def process(self, image):
        """
        Estimate the motion of the camera relative to the first frame processed.

        Args:
            image: Most recent camera image

        Returns:
            bool: True if motion was estimated, False if a fault occurred.
                Call reset() after a fault.
        """
        if self.calibration is None or self.projection.plane_to_camera is None:
            raise RuntimeError("set_intrinsic() and set_extrinsic() must be called before process()")
        if self.config.threshold_pixel_error != self._threshold_pixel_error:
            # the shared config was edited directly
            self._update_thresholds()

        start_time = time.time()

        self.tracker.process(image)
        self.tick += 1
        self.timing['tracker'] = time.time() - start_time

        if self.first:
            self.spawned_count = self.track_manager.spawn(self.tick)
            self.first = False
            self.poses.record()
            self.timing['total'] = time.time() - start_time
            return True

        annotation = self.track_manager.annotation

        # -------------------------
        # 1. Prune tracks with geometry and prepare estimator inputs
        # -------------------------
        stage_start = time.time()
        classified = self.classifier.classify(self.tracker.get_active_tracks(), annotation)
        self.timing['classify'] = time.time() - stage_start

        # -------------------------
        # 2. Rotation from points at infinity
        # -------------------------
        stage_start = time.time()
        self.far_angle, self.far_inlier_count = self.far_estimator.estimate(
            classified.far_angles, classified.tracks_far, annotation, self.tick
        )
        self.timing['far'] = time.time() - stage_start

        # -------------------------
        # 3. Rotation and translation from points on the plane
        # -------------------------
        stage_start = time.time()
        if not self.plane_motion.estimate(
            classified.plane_samples, classified.tracks_on_plane, annotation, self.tick
        ):
            logger.warning("Plane motion estimation failed at tick %d with %d samples",
                           self.tick, len(classified.plane_samples))
            self.close_inlier_count = 0
            return False
        self.close_inlier_count = self.plane_motion.inlier_count
        self.timing['close'] = time.time() - stage_start

        # -------------------------
        # 4. Merge the two estimates
        # -------------------------
        _, curr_to_key = fuse_estimates(
            self.plane_motion.key_to_curr, self.close_inlier_count,
            self.far_angle, self.far_inlier_count
        )
        self.poses.set_curr_to_key(curr_to_key)

        # -------------------------
        # 5. Track management
        # -------------------------
        stage_start = time.time()
        self.dropped_count = self.track_manager.retire(self.tick)
        self.spawned_count = 0

        if self.track_manager.should_spawn(self.close_inlier_count):
            self.track_manager.rebase(self.poses.curr_to_key)
            self.poses.rebase()
            self.spawned_count = self.track_manager.spawn(self.tick)
        self.timing['tracks'] = time.time() - stage_start

        self.poses.record()

        if self.config.debug_mode:
            logger.debug(
                "tick=%d plane=%d/%d far=%d/%d dropped=%d spawned=%d",
                self.tick, self.close_inlier_count, len(classified.plane_samples),
                self.far_inlier_count, len(classified.far_angles),
                self.dropped_count, self.spawned_count
            )

        self.timing['total'] = time.time() - start_time
        return True

    def get_curr_to_world_2d(self):
        """
        Returns:
            T: 3x3 motion from the current frame into the world frame
        """
        return self.poses.get_curr_to_world_2d()

    def get_world_to_curr_3d(self):
        """
        Returns:
            T: 4x4 transform from the world to the current camera frame
        """
        return self.poses.get_world_to_curr_3d()

    def get_far_angle(self):
        return self.far_angle

    def get_far_inlier_count(self):
        return self.far_inlier_count

    def get_close_inlier_count(self):
        return self.close_inlier_count

    def get_trajectory(self, max_points=None):
        """
        Get the trajectory points.

        Args:
            max_points: Maximum number of points to return (None for all)

        Returns:
            trajectory: Array of (x, y, yaw) rows (Nx3)
        """
        return self.poses.get_trajectory(max_points)

    def get_motion_stats(self):
        """
        Get motion estimation statistics.

        Returns:
            stats: Dictionary of statistics
        """
        T = self.get_curr_to_world_2d()
        stats = {
            'tick': self.tick,
            'close_inlier_count': self.close_inlier_count,
            'far_inlier_count': self.far_inlier_count,
            'far_angle': self.far_angle,
            'dropped_count': self.dropped_count,
            'spawned_count': self.spawned_count,
            'position': [float(T[0, 2]), float(T[1, 2])],
            'yaw': se2_yaw(T),
            'timing': dict(self.timing)
        }
        stats.update(self.tracker.get_stats())
        stats.update(self.track_manager.get_stats())
        stats.update(self.poses.get_stats())
        return stats
