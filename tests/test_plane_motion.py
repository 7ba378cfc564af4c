import numpy as np
import pytest

from planevo.core.config import OdometryConfig
from planevo.core.keyframe import TrackAnnotation
from planevo.core.tracker import PointTrack
from planevo.core.utils import se2, se2_transform_points
from planevo.models.plane_motion import PlaneMotionAdapter, PlanePtPixel, RansacPlaneMotion

from stubs import StubPlaneFitter


def _samples(projection, ground_points, key_to_curr):
    samples = []
    for point in ground_points:
        moved = se2_transform_points(key_to_curr, point)
        normalized = projection.plane_to_normal(moved[0], moved[1])
        samples.append(PlanePtPixel(point, normalized))
    return samples


def test_recovers_motion_and_rejects_outliers(projection, ground_points) -> None:
    key_to_curr = se2(-0.3, 0.1, 0.05)
    samples = _samples(projection, ground_points, key_to_curr)
    outliers = [0, 5, 11]
    for i in outliers:
        samples[i].normalized_curr = samples[i].normalized_curr + [0.05, -0.04]

    fitter = RansacPlaneMotion(projection, OdometryConfig())
    assert fitter.process(samples)

    np.testing.assert_allclose(fitter.get_model_parameters(), key_to_curr, atol=1e-6)
    inliers = {fitter.get_input_index(i) for i in range(len(fitter.get_match_set()))}
    assert inliers == set(range(len(samples))) - set(outliers)


def test_fails_without_enough_samples(projection) -> None:
    fitter = RansacPlaneMotion(projection, OdometryConfig())
    assert not fitter.process([])
    assert not fitter.process([PlanePtPixel((4.0, 0.0), (0.0, 0.1))])


def test_fails_without_consensus(projection) -> None:
    config = OdometryConfig()
    config.ransac_min_inliers = 4
    rng = np.random.default_rng(1)
    samples = [
        PlanePtPixel((rng.uniform(3, 8), rng.uniform(-1, 1)), (rng.uniform(-0.3, 0.3), rng.uniform(0.0, 0.4)))
        for _ in range(4)
    ]
    fitter = RansacPlaneMotion(projection, config)
    assert not fitter.process(samples)


def test_adapter_marks_matched_tracks() -> None:
    tracks = [PointTrack(i, 0, 0) for i in range(3)]
    annotations = {t.track_id: TrackAnnotation(True, (4.0, 0.0), last_inlier_tick=1) for t in tracks}
    samples = [PlanePtPixel((4.0, 0.0), (0.0, 0.1)) for _ in tracks]

    adapter = PlaneMotionAdapter(StubPlaneFitter(se2(0.1, 0.0, 0.0)))
    assert adapter.estimate(samples, tracks, lambda t: annotations[t.track_id], 6)
    assert adapter.inlier_count == 3
    assert all(p.last_inlier_tick == 6 for p in annotations.values())
    np.testing.assert_allclose(adapter.key_to_curr, se2(0.1, 0.0, 0.0))


def test_adapter_propagates_failure() -> None:
    adapter = PlaneMotionAdapter(StubPlaneFitter(succeed=False))
    assert not adapter.estimate([], [], lambda t: None, 1)
    assert adapter.inlier_count == 0
