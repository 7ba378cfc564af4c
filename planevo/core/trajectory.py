"""
Accumulated pose of the camera on the ground plane.
"""

import numpy as np

from .utils import se2_yaw, se3_inverse, lift_se2_to_se3


class PoseAccumulator:
    """
    Maintains the key frame pose chain and the trajectory history.

    The world pose of the current frame is the key frame's world pose
    composed with the motion since the key frame. Folding the latter into the
    former at every rebase keeps stored track coordinates small.
    """

    def __init__(self, config):
        """
        Initialize the pose accumulator.

        Args:
            config: OdometryConfig object
        """
        self.config = config
        self.key_to_world = np.eye(3)
        self.curr_to_key = np.eye(3)
        self.plane_to_camera = np.eye(4)

        # Trajectory history as (x, y, yaw)
        self.trajectory = []
        self.rebase_count = 0

    def set_plane_to_camera(self, plane_to_camera):
        self.plane_to_camera = np.asarray(plane_to_camera, dtype=np.float64)

    def set_curr_to_key(self, curr_to_key):
        self.curr_to_key = np.asarray(curr_to_key, dtype=np.float64)

    def rebase(self):
        """Make the current frame the key frame"""
        self.key_to_world = self.key_to_world @ self.curr_to_key
        self.curr_to_key = np.eye(3)
        self.rebase_count += 1

    def record(self):
        """Append the current pose to the trajectory"""
        T = self.get_curr_to_world_2d()
        self.trajectory.append((T[0, 2], T[1, 2], se2_yaw(T)))

    def get_curr_to_world_2d(self):
        """
        Returns:
            T: 3x3 transform from the current frame to the world frame
        """
        return self.key_to_world @ self.curr_to_key

    def get_world_to_curr_3d(self):
        """
        Convert the 2D motion estimate into a 3D one.

        Returns:
            T: 4x4 transform from the world frame to the current camera frame
        """
        curr_plane_to_world = lift_se2_to_se3(self.get_curr_to_world_2d())
        world_to_curr_plane = se3_inverse(curr_plane_to_world)
        return self.plane_to_camera @ world_to_curr_plane

    def get_trajectory(self, max_points=None):
        """
        Get the trajectory points.

        Args:
            max_points: Maximum number of points to return (None for all)

        Returns:
            trajectory: Array of (x, y, yaw) rows (Nx3)
        """
        if not self.trajectory:
            return np.zeros((0, 3))

        trajectory = np.array(self.trajectory)
        if max_points is not None and len(trajectory) > max_points:
            return trajectory[-max_points:]
        return trajectory

    def reset(self):
        """Reset all transforms to identity and clear the trajectory"""
        self.key_to_world = np.eye(3)
        self.curr_to_key = np.eye(3)
        self.trajectory = []
        self.rebase_count = 0

    def get_stats(self):
        """Get trajectory statistics"""
        path = self.get_trajectory()
        distance = float(np.sum(np.linalg.norm(np.diff(path[:, :2], axis=0), axis=1))) if len(path) > 1 else 0.0
        return {
            'trajectory_length': len(self.trajectory),
            'total_distance': distance,
            'rebase_count': self.rebase_count
        }
