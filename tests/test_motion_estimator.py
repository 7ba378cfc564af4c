import math

import numpy as np
import pytest

from planevo.core.config import OdometryConfig
from planevo.core.motion_estimator import PlaneInfinityOdometry
from planevo.core.utils import se2, se2_inverse, se2_yaw

from stubs import StubPlaneFitter, StubTracker, SyntheticPlaneTracker

FRAME = np.zeros((480, 640), dtype=np.uint8)


def _odometry(calibration, plane_to_camera, tracker, fitter=None, config=None):
    odometry = PlaneInfinityOdometry(config, tracker=tracker, plane_fitter=fitter)
    odometry.set_intrinsic(calibration)
    odometry.set_extrinsic(plane_to_camera)
    return odometry


def _add_ground_tracks(tracker):
    for i, (x, y) in enumerate([(320, 400), (200, 380), (450, 420), (300, 300)]):
        tracker.add_pending(i, x, y)


def test_requires_calibration() -> None:
    odometry = PlaneInfinityOdometry(tracker=StubTracker(), plane_fitter=StubPlaneFitter())
    with pytest.raises(RuntimeError):
        odometry.process(FRAME)


def test_first_frame_only_spawns(calibration, plane_to_camera) -> None:
    tracker = StubTracker()
    fitter = StubPlaneFitter()
    odometry = _odometry(calibration, plane_to_camera, tracker, fitter)

    odometry.reset()
    _add_ground_tracks(tracker)
    assert odometry.process(FRAME)
    assert odometry.get_tick() == 1
    np.testing.assert_array_equal(odometry.get_curr_to_world_2d(), np.eye(3))
    assert fitter.calls == 0
    assert len(odometry.track_manager.annotations) == 4


def test_identical_frames_give_identity(calibration, plane_to_camera) -> None:
    tracker = StubTracker()
    _add_ground_tracks(tracker)
    odometry = _odometry(calibration, plane_to_camera, tracker, StubPlaneFitter())

    assert odometry.process(FRAME)
    assert odometry.process(FRAME)
    assert odometry.get_tick() == 2
    assert odometry.get_close_inlier_count() == 4
    np.testing.assert_allclose(odometry.get_curr_to_world_2d(), np.eye(3), atol=1e-12)


def test_plane_fit_failure_is_reported(calibration, plane_to_camera) -> None:
    tracker = StubTracker()
    _add_ground_tracks(tracker)
    odometry = _odometry(calibration, plane_to_camera, tracker, StubPlaneFitter(succeed=False))

    assert odometry.process(FRAME)
    assert not odometry.process(FRAME)

    odometry.reset()
    assert tracker.reset_count == 1
    assert odometry.get_tick() == 0
    np.testing.assert_array_equal(odometry.get_curr_to_world_2d(), np.eye(3))


def test_far_tracks_alone_cannot_estimate_motion(calibration, plane_to_camera) -> None:
    tracker = StubTracker()
    tracker.add_pending(0, 320.0, 10.0)
    odometry = _odometry(calibration, plane_to_camera, tracker, StubPlaneFitter())

    assert odometry.process(FRAME)
    assert not odometry.process(FRAME)


def test_rebase_when_inliers_are_scarce(calibration, plane_to_camera) -> None:
    tracker = StubTracker()
    _add_ground_tracks(tracker)
    config = OdometryConfig()
    config.threshold_add = 10
    fitter = StubPlaneFitter(se2(-0.2, 0.0, 0.0))
    odometry = _odometry(calibration, plane_to_camera, tracker, fitter, config)

    odometry.process(FRAME)
    odometry.process(FRAME)
    odometry.process(FRAME)

    assert odometry.poses.rebase_count == 2
    np.testing.assert_array_equal(odometry.poses.curr_to_key, np.eye(3))
    np.testing.assert_allclose(odometry.get_curr_to_world_2d(), se2(0.4, 0.0, 0.0), atol=1e-12)


def test_world_to_camera_at_start_is_extrinsic(calibration, plane_to_camera) -> None:
    tracker = StubTracker()
    _add_ground_tracks(tracker)
    odometry = _odometry(calibration, plane_to_camera, tracker, StubPlaneFitter())
    odometry.process(FRAME)
    np.testing.assert_allclose(odometry.get_world_to_curr_3d(), plane_to_camera, atol=1e-12)


def test_world_to_camera_after_forward_motion(calibration, plane_to_camera) -> None:
    tracker = StubTracker()
    _add_ground_tracks(tracker)
    odometry = _odometry(calibration, plane_to_camera, tracker, StubPlaneFitter(se2(-1.0, 0.0, 0.0)))
    odometry.process(FRAME)
    odometry.process(FRAME)

    # the world origin is now one unit behind the camera along the plane's z axis
    world_to_camera = odometry.get_world_to_curr_3d()
    expected = plane_to_camera @ np.array([0.0, 0.0, -1.0, 1.0])
    np.testing.assert_allclose(world_to_camera @ np.array([0.0, 0.0, 0.0, 1.0]), expected, atol=1e-12)


def test_strict_far_flag(calibration, plane_to_camera) -> None:
    odometry = _odometry(calibration, plane_to_camera, StubTracker(), StubPlaneFitter())
    assert not odometry.is_strict_far()
    odometry.set_strict_far(True)
    assert odometry.is_strict_far()
    assert odometry.classifier.strict_far


def test_far_threshold_follows_intrinsics(calibration, plane_to_camera) -> None:
    odometry = _odometry(calibration, plane_to_camera, StubTracker(), StubPlaneFitter())
    assert odometry.threshold_far_angle_error == pytest.approx(math.atan2(1.5, 500.0))

    K = calibration.camera_matrix.copy()
    K[0, 0] = 1000.0
    odometry.set_intrinsic(K)
    assert odometry.threshold_far_angle_error == pytest.approx(math.atan2(1.5, 1000.0))
    assert odometry.far_estimator.threshold_angle_error == odometry.threshold_far_angle_error


@pytest.mark.parametrize("threshold_add", [0, 5])
@pytest.mark.parametrize("strict_far", [False, True])
def test_synthetic_motion(calibration, plane_to_camera, projection, ground_points,
                          far_directions, threshold_add, strict_far) -> None:
    poses = [(0.1 * k, 0.02 * k, 0.03 * k) for k in range(6)]
    tracker = SyntheticPlaneTracker(projection, poses, ground_points, far_directions)

    config = OdometryConfig()
    config.threshold_add = threshold_add
    config.strict_far = strict_far
    odometry = _odometry(calibration, plane_to_camera, tracker, config=config)

    for _ in poses:
        assert odometry.process(FRAME)

    x, y, yaw = poses[-1]
    curr_to_world = odometry.get_curr_to_world_2d()
    np.testing.assert_allclose(curr_to_world[:2, 2], [x, y], atol=1e-4)
    assert se2_yaw(curr_to_world) == pytest.approx(yaw, abs=1e-5)
    assert odometry.get_close_inlier_count() == len(ground_points)
    assert odometry.get_far_inlier_count() == len(far_directions)
    assert odometry.get_far_angle() == pytest.approx(-(yaw - _key_yaw(odometry, poses)), abs=1e-5)

    trajectory = odometry.get_trajectory()
    assert trajectory.shape == (len(poses), 3)
    np.testing.assert_allclose(trajectory[:, 2], [p[2] for p in poses], atol=1e-5)


def _key_yaw(odometry, poses):
    # yaw of the key frame the last far angle was measured against
    rebases = odometry.poses.rebase_count
    return poses[-2][2] if rebases == len(poses) - 1 else poses[0][2]


def test_motion_stats(calibration, plane_to_camera) -> None:
    tracker = StubTracker()
    _add_ground_tracks(tracker)
    odometry = _odometry(calibration, plane_to_camera, tracker, StubPlaneFitter())
    odometry.process(FRAME)
    odometry.process(FRAME)

    stats = odometry.get_motion_stats()
    assert stats['tick'] == 2
    assert stats['close_inlier_count'] == 4
    assert stats['track_count'] == 4
    assert 'total' in stats['timing']


def test_world_to_camera_after_turning(calibration, plane_to_camera) -> None:
    curr_to_world = se2(0.5, -0.3, 0.4)
    tracker = StubTracker()
    _add_ground_tracks(tracker)
    fitter = StubPlaneFitter(se2_inverse(curr_to_world))
    odometry = _odometry(calibration, plane_to_camera, tracker, fitter)
    odometry.process(FRAME)
    odometry.process(FRAME)
    np.testing.assert_allclose(odometry.get_curr_to_world_2d(), curr_to_world, atol=1e-12)

    R = curr_to_world[:2, :2]
    t = curr_to_world[:2, 2]
    world_to_camera = odometry.get_world_to_curr_3d()
    for g in [np.array([2.0, 1.0]), np.array([-1.0, 3.0]), np.array([0.0, 0.0])]:
        p = R.T @ (g - t)
        expected = plane_to_camera @ np.array([-p[1], 0.0, p[0], 1.0])
        actual = world_to_camera @ np.array([-g[1], 0.0, g[0], 1.0])
        np.testing.assert_allclose(actual, expected, atol=1e-12)


def test_far_threshold_follows_pixel_error(calibration, plane_to_camera) -> None:
    odometry = _odometry(calibration, plane_to_camera, StubTracker(), StubPlaneFitter())

    odometry.set_threshold_pixel_error(3.0)
    assert odometry.far_estimator.threshold_angle_error == pytest.approx(math.atan2(3.0, 500.0))

    # edits made directly on the shared config are picked up by the next frame
    odometry.config.threshold_pixel_error = 5.0
    odometry.process(FRAME)
    assert odometry.threshold_far_angle_error == pytest.approx(math.atan2(5.0, 500.0))
    assert odometry.far_estimator.threshold_angle_error == odometry.threshold_far_angle_error


def test_reset_restarts_plane_fitter(calibration, plane_to_camera) -> None:
    odometry = _odometry(calibration, plane_to_camera, StubTracker())
    first = odometry.plane_fitter.rng.random(4)
    odometry.plane_fitter.rng.random(10)

    odometry.reset()
    np.testing.assert_array_equal(odometry.plane_fitter.rng.random(4), first)


def test_motion_stats_include_tracker(calibration, plane_to_camera) -> None:
    tracker = StubTracker()
    _add_ground_tracks(tracker)
    odometry = _odometry(calibration, plane_to_camera, tracker, StubPlaneFitter())
    odometry.process(FRAME)

    stats = odometry.get_motion_stats()
    assert stats['num_tracks'] == 4
    assert stats['num_new'] == 4
