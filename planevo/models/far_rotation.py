"""
Rotation-only motion estimation from points at infinity.
"""

import math

import numpy as np

from ..core.utils import angle_dist


def compute_angle_of_rotation(pointing, ground):
    """
    Signed angle between a current ground direction and the one in the key frame.

    Args:
        pointing: Pointing vector of the observation in the plane frame
        ground: Unit direction of the track on the ground plane in the key frame

    Returns:
        angle: Rotation angle in radians
    """
    curr = np.array([pointing[2], -pointing[0]])
    curr /= np.linalg.norm(curr)

    # Round off can push the dot product slightly above one
    dot = min(1.0, curr[0] * ground[0] + curr[1] * ground[1])
    angle = math.acos(dot)

    # Cross product gives the direction
    if curr[0] * ground[1] - curr[1] * ground[0] > 0:
        angle = -angle
    return angle


def maximize_count_in_spread(data, max_spread):
    """
    Find the angle with the largest number of angles within a spread of it.

    The angles are sorted and a window slides over them, treating the sorted
    sequence as circular. The longest run whose first and last angles are no
    further apart than max_spread wins; ties keep the run found first. The
    angle at index ``start + length // 2`` of that run is returned.

    Args:
        data: Sequence of angles in radians
        max_spread: Maximum angular distance between the ends of a run

    Returns:
        best: Selected angle, 0.0 if data is empty
        best_length: Number of angles in the selected run
    """
    size = len(data)
    if size == 0:
        return 0.0, 0

    data = sorted(data)

    length = 0
    while length < size and angle_dist(data[0], data[length]) <= max_spread:
        length += 1

    best_start = 0
    best_length = length

    start = 1
    while start < size and length < size:
        length -= 1
        while length < size:
            if angle_dist(data[start], data[(start + length) % size]) > max_spread:
                break
            length += 1

        if length > best_length:
            best_length = length
            best_start = start
        start += 1

    return data[(best_start + best_length // 2) % size], best_length


class FarRotationEstimator:
    """
    Estimates yaw from points at infinity using a robust inlier count.

    Unlike RANSAC the search over the circle is exhaustive, so the selected
    angle maximizes the inlier set for the given window.
    """

    def __init__(self):
        self.threshold_angle_error = 0.0
        self.far_angle = 0.0
        self.inlier_count = 0

    def set_threshold(self, threshold_angle_error):
        """
        Args:
            threshold_angle_error: Largest angular error of an inlier in radians
        """
        self.threshold_angle_error = threshold_angle_error

    def estimate(self, angles, tracks, annotations, tick):
        """
        Select the yaw and mark the tracks which agree with it.

        Args:
            angles: Rotation angle of each far track
            tracks: Far tracks, in the same order as angles
            annotations: Callable returning the TrackAnnotation of a track
            tick: Current frame number

        Returns:
            far_angle: Selected yaw, only meaningful if inlier_count > 0
            inlier_count: Number of far inliers
        """
        self.inlier_count = 0
        if len(angles) == 0:
            return self.far_angle, 0

        self.far_angle, _ = maximize_count_in_spread(
            angles, 2 * self.threshold_angle_error
        )

        for angle, track in zip(angles, tracks):
            if angle_dist(angle, self.far_angle) <= self.threshold_angle_error:
                annotations(track).mark_inlier(tick)
                self.inlier_count += 1

        return self.far_angle, self.inlier_count
