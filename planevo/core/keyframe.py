"""
Track life-cycle management relative to the current key frame.
"""

import logging
import math

import numpy as np

from .utils import se2_inverse, se2_transform_points, rotate_vector

logger = logging.getLogger(__name__)


class TrackAnnotation:
    """
    Motion estimation state attached to a single track.

    Ground observations are expressed in the key frame. For points on the
    plane ``ground`` is the 2D plane coordinate, for points at infinity it is
    a unit direction on the ground plane.
    """

    def __init__(self, on_plane, ground, pointing_y=0.0, last_inlier_tick=0):
        self.on_plane = on_plane
        self.ground = np.asarray(ground, dtype=np.float64)
        # y component of the pointing vector at spawn, with x-z normalized to one
        self.pointing_y = pointing_y
        self.last_inlier_tick = last_inlier_tick

    def mark_inlier(self, tick):
        self.last_inlier_tick = max(self.last_inlier_tick, tick)

    def __repr__(self):
        kind = 'plane' if self.on_plane else 'far'
        return f"TrackAnnotation({kind}, ground={self.ground}, last_inlier={self.last_inlier_tick})"


class TrackManager:
    """
    Spawns, annotates and retires tracks owned by an external point tracker.

    Annotations live in a side table keyed by track id. Every track is
    annotated exactly once when it is spawned.
    """

    def __init__(self, tracker, projection, config):
        """
        Initialize the track manager.

        Args:
            tracker: PointTracker
            projection: CameraPlaneProjection with intrinsic and extrinsic set
            config: OdometryConfig object
        """
        self.tracker = tracker
        self.projection = projection
        self.config = config
        self.annotations = {}

    def annotation(self, track):
        """Annotation of a track, which must have been spawned by this manager"""
        try:
            return self.annotations[track.track_id]
        except KeyError:
            raise LookupError(
                f"Track {track.track_id} has no annotation; tracks must be annotated at spawn"
            ) from None

    def should_spawn(self, close_inlier_count):
        """
        Determine if the key frame should move and new tracks be spawned.

        Args:
            close_inlier_count: Number of plane inliers in the current frame

        Returns:
            bool: True if new tracks are needed
        """
        threshold = self.config.threshold_add
        return threshold <= 0 or close_inlier_count < threshold

    def spawn(self, tick):
        """
        Request new tracks and decide if each lies on the plane or at infinity.

        Args:
            tick: Current frame number

        Returns:
            int: Number of tracks spawned
        """
        self.tracker.spawn_tracks()
        spawned = self.tracker.get_new_tracks()
        if not spawned:
            return 0

        calibration = self.projection.calibration
        R = self.projection.camera_to_plane_rotation

        nx, ny = calibration.undistort(
            np.array([t.x for t in spawned]), np.array([t.y for t in spawned])
        )

        num_far = 0
        for track, n_x, n_y in zip(spawned, nx, ny):
            if track.track_id in self.annotations:
                raise ValueError(f"Track {track.track_id} was spawned twice")

            ground = self.projection.normal_to_plane(n_x, n_y)
            if ground is not None:
                p = TrackAnnotation(True, ground, last_inlier_tick=tick)
            else:
                # Rotate the pointing vector into the plane frame
                pointing = R @ np.array([n_x, n_y, 1.0])
                pointing /= np.linalg.norm(pointing)

                norm_xz = math.sqrt(pointing[0] ** 2 + pointing[2] ** 2)
                direction = np.array([pointing[2], -pointing[0]]) / norm_xz
                p = TrackAnnotation(False, direction, pointing[1] / norm_xz, tick)
                num_far += 1

            self.annotations[track.track_id] = p

        logger.debug("Spawned %d tracks (%d at infinity)", len(spawned), num_far)
        return len(spawned)

    def retire(self, tick):
        """
        Drop tracks which have not been inliers recently.

        Args:
            tick: Current frame number

        Returns:
            int: Number of dropped tracks
        """
        dropped = 0
        alive = set()
        for track in self.tracker.get_all_tracks():
            p = self.annotation(track)
            if tick - p.last_inlier_tick > self.config.threshold_retire:
                self.tracker.drop_track(track)
                del self.annotations[track.track_id]
                dropped += 1
            else:
                alive.add(track.track_id)

        # Forget tracks which the tracker discarded on its own
        for track_id in [k for k in self.annotations if k not in alive]:
            del self.annotations[track_id]

        return dropped

    def rebase(self, curr_to_key):
        """
        Express every stored observation relative to the current frame.

        Args:
            curr_to_key: 3x3 transform from the current frame to the key frame
        """
        key_to_curr = se2_inverse(curr_to_key)
        c = key_to_curr[0, 0]
        s = key_to_curr[1, 0]

        for track in self.tracker.get_all_tracks():
            p = self.annotation(track)
            if p.on_plane:
                p.ground = se2_transform_points(key_to_curr, p.ground)
            else:
                p.ground = rotate_vector(c, s, p.ground)

    def clear(self):
        """Forget all annotations"""
        self.annotations = {}

    def get_stats(self):
        """Get track statistics"""
        on_plane = sum(1 for p in self.annotations.values() if p.on_plane)
        return {
            'track_count': len(self.annotations),
            'on_plane': on_plane,
            'at_infinity': len(self.annotations) - on_plane
        }
