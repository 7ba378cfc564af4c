"""
Robust 2D motion estimation from tracks on the ground plane.
"""

import logging

import numpy as np

from ..core.utils import fit_se2, se2_transform_points

logger = logging.getLogger(__name__)


class PlanePtPixel:
    """
    Correspondence between a point on the plane in the key frame and its
    normalized image observation in the current frame.
    """

    __slots__ = ('plane_key', 'normalized_curr')

    def __init__(self, plane_key, normalized_curr):
        self.plane_key = np.asarray(plane_key, dtype=np.float64)
        self.normalized_curr = np.asarray(normalized_curr, dtype=np.float64)


class RansacPlaneMotion:
    """
    RANSAC estimator for the 2D rigid motion from the key frame to the
    current frame.

    Hypotheses come from two correspondences whose current observations are
    projected onto the plane. A correspondence is an inlier when the key frame
    plane point, moved by the hypothesis, reprojects within the pixel error
    threshold of its observation.
    """

    SAMPLE_SIZE = 2

    def __init__(self, projection, config):
        """
        Initialize the estimator.

        Args:
            projection: CameraPlaneProjection with intrinsic and extrinsic set
            config: OdometryConfig object
        """
        self.projection = projection
        self.config = config
        self.rng = np.random.default_rng(config.random_seed)

        self.model = None
        self.inlier_indices = np.zeros(0, dtype=int)
        self.samples = []

    def reset(self):
        """Restart the random sequence and forget the last model"""
        self.rng = np.random.default_rng(self.config.random_seed)
        self.model = None
        self.inlier_indices = np.zeros(0, dtype=int)
        self.samples = []

    def process(self, samples):
        """
        Fit the motion to a list of PlanePtPixel.

        Returns:
            bool: True if a model with enough inliers was found
        """
        self.samples = list(samples)
        self.model = None
        self.inlier_indices = np.zeros(0, dtype=int)

        if len(self.samples) < self.SAMPLE_SIZE:
            return False

        plane_key = np.array([s.plane_key for s in self.samples])
        normalized = np.array([s.normalized_curr for s in self.samples])

        # Current observations on the plane, used only to generate hypotheses
        plane_curr = np.full_like(plane_key, np.nan)
        for i, (nx, ny) in enumerate(normalized):
            ground = self.projection.normal_to_plane(nx, ny)
            if ground is not None:
                plane_curr[i] = ground
        usable = np.flatnonzero(~np.isnan(plane_curr[:, 0]))
        if len(usable) < self.SAMPLE_SIZE:
            return False

        px, py = self.projection.calibration.distort(normalized[:, 0], normalized[:, 1])
        observed = np.stack([px, py], axis=-1)
        threshold = self.config.threshold_pixel_error ** 2

        best_model = None
        best_inliers = np.zeros(0, dtype=int)
        for _ in range(self.config.ransac_iterations):
            pick = self.rng.choice(usable, size=self.SAMPLE_SIZE, replace=False)
            model = fit_se2(plane_key[pick], plane_curr[pick])
            inliers = self._inliers(model, plane_key, observed, threshold)
            if len(inliers) > len(best_inliers):
                best_model = model
                best_inliers = inliers
                if len(inliers) == len(self.samples):
                    break

        if best_model is None or len(best_inliers) < max(self.SAMPLE_SIZE, self.config.ransac_min_inliers):
            logger.debug("Plane motion: %d inliers out of %d samples",
                         len(best_inliers), len(self.samples))
            return False

        if self.config.ransac_refine:
            refit_idx = best_inliers[~np.isnan(plane_curr[best_inliers, 0])]
            if len(refit_idx) >= self.SAMPLE_SIZE:
                refined = fit_se2(plane_key[refit_idx], plane_curr[refit_idx])
                refined_inliers = self._inliers(refined, plane_key, observed, threshold)
                if len(refined_inliers) >= len(best_inliers):
                    best_model = refined
                    best_inliers = refined_inliers

        self.model = best_model
        self.inlier_indices = best_inliers
        return True

    def _inliers(self, key_to_curr, plane_key, observed, threshold):
        """Indices of samples whose predicted pixel is within the threshold"""
        moved = se2_transform_points(key_to_curr, plane_key)
        px, py = self.projection.plane_to_pixel(moved[:, 0], moved[:, 1])
        error = (px - observed[:, 0]) ** 2 + (py - observed[:, 1]) ** 2
        # NaN errors (behind the camera) compare False
        return np.flatnonzero(error < threshold)

    def get_model_parameters(self):
        return self.model.copy()

    def get_match_set(self):
        return [self.samples[i] for i in self.inlier_indices]

    def get_input_index(self, i):
        return int(self.inlier_indices[i])


class PlaneMotionAdapter:
    """
    Runs a robust plane motion fitter and marks the tracks it agrees with.
    """

    def __init__(self, fitter):
        """
        Args:
            fitter: Object with process(), get_model_parameters(),
                get_match_set() and get_input_index()
        """
        self.fitter = fitter
        self.key_to_curr = None
        self.inlier_count = 0

    def estimate(self, samples, tracks, annotations, tick):
        """
        Estimate the full 2D motion from points on the plane.

        Args:
            samples: PlanePtPixel list
            tracks: Plane tracks, in the same order as samples
            annotations: Callable returning the TrackAnnotation of a track
            tick: Current frame number

        Returns:
            bool: True if successful
        """
        self.inlier_count = 0
        if not self.fitter.process(samples):
            return False

        self.key_to_curr = np.array(self.fitter.get_model_parameters(), dtype=np.float64)
        self.inlier_count = len(self.fitter.get_match_set())

        for i in range(self.inlier_count):
            index = self.fitter.get_input_index(i)
            annotations(tracks[index]).mark_inlier(tick)

        return True
