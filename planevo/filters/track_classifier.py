"""
Geometric classification of active tracks for motion estimation.
"""

import numpy as np

from ..models.far_rotation import compute_angle_of_rotation
from ..models.plane_motion import PlanePtPixel


class ClassifiedTracks:
    """
    Per-frame output of the classifier. The lists are cleared, not replaced,
    at the start of every frame.
    """

    def __init__(self):
        self.plane_samples = []
        self.tracks_on_plane = []
        self.far_angles = []
        self.tracks_far = []

    def clear(self):
        self.plane_samples.clear()
        self.tracks_on_plane.clear()
        self.far_angles.clear()
        self.tracks_far.clear()


class TrackClassifier:
    """
    Splits the active tracks into points on the plane and points at infinity.

    Tracks which no longer satisfy the geometry they were spawned with are
    skipped for the current frame only.
    """

    def __init__(self, projection, config):
        """
        Initialize the classifier.

        Args:
            projection: CameraPlaneProjection with intrinsic and extrinsic set
            config: OdometryConfig object
        """
        self.projection = projection
        self.config = config
        self.result = ClassifiedTracks()

    @property
    def strict_far(self):
        return self.config.strict_far

    def classify(self, tracks, annotations):
        """
        Classify tracks and prepare the inputs of both motion estimators.

        Args:
            tracks: Active PointTrack list
            annotations: Callable returning the TrackAnnotation of a track

        Returns:
            result: ClassifiedTracks, reused between frames
        """
        result = self.result
        result.clear()
        if not tracks:
            return result

        calibration = self.projection.calibration
        nx, ny = calibration.undistort(
            np.array([t.x for t in tracks]), np.array([t.y for t in tracks])
        )
        pointing = self.projection.pointing_in_plane(nx, ny)

        for i, track in enumerate(tracks):
            p = annotations(track)
            v = pointing[i]

            if p.on_plane:
                # Still points at the plane
                if v[1] > 0:
                    result.plane_samples.append(
                        PlanePtPixel(p.ground, (nx[i], ny[i]))
                    )
                    result.tracks_on_plane.append(track)
            else:
                if self.strict_far:
                    all_good = self.is_rotation_from_axis_y(track, p, v)
                else:
                    all_good = v[1] < 0

                if all_good:
                    result.far_angles.append(compute_angle_of_rotation(v, p.ground))
                    result.tracks_far.append(track)

        return result

    def is_rotation_from_axis_y(self, track, annotation, pointing):
        """
        Checks for motion which a rotation about the plane's y axis cannot cause.

        The pointing vector is given the y component it had at spawn, with its
        x-z components normalized to one, then projected back into the image
        and compared against the observed pixel.

        Args:
            track: PointTrack
            annotation: TrackAnnotation of the track
            pointing: Pointing vector of the observation in the plane frame

        Returns:
            bool: True if the observation is consistent with a pure yaw
        """
        norm_xz = np.hypot(pointing[0], pointing[2])
        adjusted = np.array([
            pointing[0] / norm_xz, annotation.pointing_y, pointing[2] / norm_xz
        ])

        # Back into the camera frame
        adjusted = self.projection.camera_to_plane_rotation.T @ adjusted
        if adjusted[2] <= 0:
            return False

        px, py = self.projection.calibration.distort(
            adjusted[0] / adjusted[2], adjusted[1] / adjusted[2]
        )
        error = (px - track.x) ** 2 + (py - track.y) ** 2
        return error < self.config.threshold_pixel_error ** 2
