"""
Point feature trackers supplying sparse optical flow to the odometry.
"""

import logging
from abc import ABC, abstractmethod

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class PointTrack:
    """
    A 2D point observed across frames with a persistent identity.
    """

    def __init__(self, track_id, x, y, spawn_tick=0):
        self.track_id = track_id
        self.x = float(x)
        self.y = float(y)
        self.spawn_tick = spawn_tick

    def __repr__(self):
        return f"PointTrack(id={self.track_id}, x={self.x:.2f}, y={self.y:.2f})"


class PointTracker(ABC):
    """
    Abstract base class for point trackers.
    """

    @abstractmethod
    def process(self, image):
        """Update all tracks using a new image"""

    @abstractmethod
    def spawn_tracks(self):
        """Detect new tracks in the most recent image"""

    @abstractmethod
    def get_new_tracks(self):
        """Tracks created by the last call to spawn_tracks()"""

    @abstractmethod
    def get_active_tracks(self):
        """Tracks which were observed in the most recent image"""

    @abstractmethod
    def get_all_tracks(self):
        """Every track currently owned by the tracker"""

    @abstractmethod
    def drop_track(self, track):
        """Remove a track. Returns True if it was owned by the tracker"""

    @abstractmethod
    def reset(self):
        """Discard all tracks and image history"""

    def get_stats(self):
        """Get tracker statistics"""
        return {'num_tracks': len(self.get_active_tracks()), 'num_new': len(self.get_new_tracks())}


class KltPointTracker(PointTracker):
    """
    Tracker using Lucas-Kanade optical flow for tracking features and
    Shi-Tomasi corners for spawning them.
    """

    def __init__(self, config):
        """
        Initialize the tracker.

        Args:
            config: OdometryConfig object with tracker parameters
        """
        self.config = config
        self.lk_params = config.get_optical_flow_params()

        self.prev_gray = None
        self.gray = None
        self.tracks = []
        self.new_tracks = []
        self.next_id = 0
        self.frame_count = 0

    def process(self, image):
        if image is None:
            raise ValueError("Input image is None")
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim > 2 else image

        self.prev_gray = self.gray
        self.gray = gray
        self.new_tracks = []
        self.frame_count += 1

        if self.prev_gray is None or not self.tracks:
            return

        p0 = np.float32([[t.x, t.y] for t in self.tracks]).reshape(-1, 1, 2)
        p1, st, _ = cv2.calcOpticalFlowPyrLK(self.prev_gray, gray, p0, None, **self.lk_params)
        p1 = p1.reshape(-1, 2)
        st = st.reshape(-1)

        height, width = gray.shape[:2]
        border = self.config.border
        survivors = []
        for track, pt, ok in zip(self.tracks, p1, st):
            x, y = float(pt[0]), float(pt[1])
            if not ok:
                continue
            if x < border or y < border or x >= width - border or y >= height - border:
                continue
            track.x = x
            track.y = y
            survivors.append(track)

        lost = len(self.tracks) - len(survivors)
        if lost and self.config.debug_mode:
            logger.debug("KLT lost %d of %d tracks", lost, len(self.tracks))
        self.tracks = survivors

    def spawn_tracks(self):
        self.new_tracks = []
        if self.gray is None:
            return

        available = self.config.max_tracks - len(self.tracks)
        if available <= 0:
            return

        # Keep new corners away from existing tracks
        mask = np.full(self.gray.shape[:2], 255, dtype=np.uint8)
        radius = max(1, int(self.config.feature_min_distance))
        for t in self.tracks:
            cv2.circle(mask, (int(round(t.x)), int(round(t.y))), radius, 0, -1)

        corners = cv2.goodFeaturesToTrack(
            self.gray,
            maxCorners=available,
            qualityLevel=self.config.feature_quality_level,
            minDistance=self.config.feature_min_distance,
            mask=mask,
            blockSize=self.config.feature_block_size
        )
        if corners is None:
            return

        for x, y in corners.reshape(-1, 2):
            track = PointTrack(self.next_id, x, y, spawn_tick=self.frame_count)
            self.next_id += 1
            self.new_tracks.append(track)
            self.tracks.append(track)

    def get_new_tracks(self):
        return list(self.new_tracks)

    def get_active_tracks(self):
        # KLT removes a track as soon as it is lost, so every track is active
        return list(self.tracks)

    def get_all_tracks(self):
        return list(self.tracks)

    def drop_track(self, track):
        for i, t in enumerate(self.tracks):
            if t is track:
                del self.tracks[i]
                return True
        return False

    def reset(self):
        self.prev_gray = None
        self.gray = None
        self.tracks = []
        self.new_tracks = []
        self.next_id = 0
        self.frame_count = 0
