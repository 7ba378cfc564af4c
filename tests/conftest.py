import math

import numpy as np
import pytest

from planevo.core.calibration import CameraCalibration
from planevo.core.plane_projection import CameraPlaneProjection, plane_to_camera_from_height


@pytest.fixture
def calibration() -> CameraCalibration:
    K = np.array([
        [500.0, 0.0, 320.0],
        [0.0, 500.0, 240.0],
        [0.0, 0.0, 1.0]
    ])
    return CameraCalibration(K, np.zeros(5))


@pytest.fixture
def plane_to_camera() -> np.ndarray:
    return plane_to_camera_from_height(1.5, math.radians(20.0))


@pytest.fixture
def projection(calibration, plane_to_camera) -> CameraPlaneProjection:
    projection = CameraPlaneProjection()
    projection.set_intrinsic(calibration)
    projection.set_plane_to_camera(plane_to_camera)
    return projection


@pytest.fixture
def ground_points() -> list:
    rng = np.random.default_rng(7)
    return [(rng.uniform(3.0, 8.0), rng.uniform(-1.5, 1.5)) for _ in range(30)]


@pytest.fixture
def far_directions() -> list:
    return list(np.linspace(-0.4, 0.4, 12))
