"""
Camera intrinsic calibration and pixel/normalized coordinate transforms.
"""

import math
import os
import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class CameraCalibration:
    """
    Pinhole camera with lens distortion, in OpenCV conventions.

    Converts between pixel coordinates and normalized image coordinates,
    i.e. coordinates on the z=1 plane of the camera frame.
    """

    def __init__(self, camera_matrix, dist_coeffs=None):
        """
        Initialize the calibration.

        Args:
            camera_matrix: Camera intrinsic matrix (3x3)
            dist_coeffs: Distortion coefficients (None for no distortion)
        """
        camera_matrix = np.asarray(camera_matrix, dtype=np.float64)
        if camera_matrix.shape != (3, 3):
            raise ValueError(f"camera_matrix must be 3x3, got {camera_matrix.shape}")

        if dist_coeffs is None:
            dist_coeffs = np.zeros(5)
        dist_coeffs = np.asarray(dist_coeffs, dtype=np.float64).reshape(-1)

        self.camera_matrix = camera_matrix
        self.dist_coeffs = dist_coeffs

    @property
    def fx(self):
        return self.camera_matrix[0, 0]

    def angle_error(self, pixel_error):
        """
        Change in viewing angle caused by a pixel error at the image center.

        Args:
            pixel_error: Error in pixels

        Returns:
            angle: Angular error in radians
        """
        return math.atan2(pixel_error, self.fx)

    def undistort(self, px, py):
        """
        Convert pixel coordinates into normalized image coordinates.

        Args:
            px, py: Scalars or arrays of pixel coordinates

        Returns:
            nx, ny: Normalized coordinates, same shape as the input
        """
        scalar = np.isscalar(px)
        pts = np.stack([np.ravel(px), np.ravel(py)], axis=-1).astype(np.float64)
        if len(pts) == 0:
            return np.zeros(0), np.zeros(0)

        norm = cv2.undistortPoints(
            pts.reshape(-1, 1, 2), self.camera_matrix, self.dist_coeffs
        ).reshape(-1, 2)

        if scalar:
            return float(norm[0, 0]), float(norm[0, 1])
        return norm[:, 0], norm[:, 1]

    def distort(self, nx, ny):
        """
        Convert normalized image coordinates into pixel coordinates.

        Args:
            nx, ny: Scalars or arrays of normalized coordinates

        Returns:
            px, py: Pixel coordinates, same shape as the input
        """
        scalar = np.isscalar(nx)
        nx = np.ravel(nx).astype(np.float64)
        ny = np.ravel(ny).astype(np.float64)
        if len(nx) == 0:
            return np.zeros(0), np.zeros(0)

        object_points = np.stack([nx, ny, np.ones_like(nx)], axis=-1)
        pixels, _ = cv2.projectPoints(
            object_points.reshape(-1, 1, 3), np.zeros(3), np.zeros(3),
            self.camera_matrix, self.dist_coeffs
        )
        pixels = pixels.reshape(-1, 2)

        if scalar:
            return float(pixels[0, 0]), float(pixels[0, 1])
        return pixels[:, 0], pixels[:, 1]

    @classmethod
    def from_npz(cls, filepath):
        """
        Load calibration parameters from an npz file.

        Args:
            filepath: Path holding 'camera_matrix' and 'dist_coeffs'

        Returns:
            calibration: CameraCalibration
        """
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Calibration file not found: {filepath}")
        data = np.load(filepath)
        logger.info("Calibration loaded from %s", filepath)
        return cls(data['camera_matrix'], data['dist_coeffs'])

    def save_npz(self, filepath):
        """Save calibration parameters to an npz file"""
        np.savez(filepath, camera_matrix=self.camera_matrix, dist_coeffs=self.dist_coeffs)
        logger.info("Calibration saved to %s", filepath)
