"""
Projection between the image and a flat ground plane.
"""

import numpy as np

from .utils import se3, se3_inverse


class CameraPlaneProjection:
    """
    Projects normalized image observations onto the ground plane and back.

    The plane reference frame has the ground on its x-z plane, so a point on
    the ground has y = 0. A 2D ground coordinate (x, y) is the 3D plane
    point (-y, 0, x).
    """

    def __init__(self):
        self.calibration = None
        self.plane_to_camera = None
        self.camera_to_plane = None

    def set_intrinsic(self, calibration):
        """
        Args:
            calibration: CameraCalibration
        """
        self.calibration = calibration

    def set_plane_to_camera(self, plane_to_camera, compute_inverse=True):
        """
        Set the camera extrinsic.

        Args:
            plane_to_camera: 4x4 transform from the plane frame to the camera frame
            compute_inverse: Compute camera_to_plane from it. Pass False only if
                camera_to_plane was already assigned.
        """
        plane_to_camera = np.asarray(plane_to_camera, dtype=np.float64)
        if plane_to_camera.shape != (4, 4):
            raise ValueError(f"plane_to_camera must be 4x4, got {plane_to_camera.shape}")
        self.plane_to_camera = plane_to_camera
        if compute_inverse:
            self.camera_to_plane = se3_inverse(plane_to_camera)

    @property
    def camera_to_plane_rotation(self):
        return self.camera_to_plane[:3, :3]

    def pointing_in_plane(self, nx, ny):
        """
        Rotate the viewing ray of normalized observations into the plane frame.

        Args:
            nx, ny: Scalars or arrays of normalized coordinates

        Returns:
            pointing: (3,) or (N,3) unit vectors in the plane frame
        """
        nx = np.asarray(nx, dtype=np.float64)
        pointing = np.stack([nx, np.asarray(ny, dtype=np.float64), np.ones_like(nx)], axis=-1)
        pointing = pointing @ self.camera_to_plane_rotation.T
        return pointing / np.linalg.norm(pointing, axis=-1, keepdims=True)

    def normal_to_plane(self, nx, ny):
        """
        Intersect the viewing ray of a normalized observation with the ground.

        Args:
            nx, ny: Normalized image coordinate

        Returns:
            ground: (2,) ground plane coordinate, or None if the ray never hits
                the plane in front of the camera
        """
        slope = self.camera_to_plane_rotation @ np.array([nx, ny, 1.0])
        origin = self.camera_to_plane[:3, 3]

        if slope[1] == 0:
            return None
        t = -origin[1] / slope[1]
        if t <= 0:
            return None

        X = origin + t * slope
        return np.array([X[2], -X[0]])

    def plane_to_normal(self, x, y):
        """
        Project ground plane points into normalized image coordinates.

        Args:
            x, y: Scalars or arrays of ground coordinates

        Returns:
            normalized: (2,) or (N,2) normalized coordinates, NaN where the
                point is behind the camera
        """
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        plane_3d = np.stack([-y, np.zeros_like(x), x], axis=-1)
        cam = plane_3d @ self.plane_to_camera[:3, :3].T + self.plane_to_camera[:3, 3]

        z = cam[..., 2]
        with np.errstate(divide='ignore', invalid='ignore'):
            normalized = cam[..., :2] / z[..., None]
        return np.where((z > 0)[..., None], normalized, np.nan)

    def plane_to_pixel(self, x, y):
        """Project ground plane points into pixel coordinates"""
        normalized = self.plane_to_normal(x, y)
        return self.calibration.distort(normalized[..., 0], normalized[..., 1])


def plane_to_camera_from_height(height, pitch=0.0):
    """
    Extrinsic of a camera mounted above the plane, pitched toward the ground.

    Args:
        height: Height of the camera center above the plane
        pitch: Downward tilt of the optical axis in radians

    Returns:
        plane_to_camera: 4x4 transform
    """
    c = np.cos(pitch)
    s = np.sin(pitch)
    R = np.array([
        [1.0, 0.0, 0.0],
        [0.0, c, s],
        [0.0, -s, c]
    ])
    camera_to_plane = se3(R, [0.0, -height, 0.0])
    return se3_inverse(camera_to_plane)
