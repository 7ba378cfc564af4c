"""
Configuration classes for plane/infinity visual odometry.
"""

import json

import cv2


class OdometryConfig:
    """
    Configuration parameters for plane/infinity motion estimation.
    Centralizes all parameter management in one place.
    """

    def __init__(self):
        # Track management parameters
        self.threshold_add = 60        # spawn when plane inliers drop below this, <= 0 always spawns
        self.threshold_retire = 2      # frames a track may go without being an inlier
        self.threshold_pixel_error = 1.5
        self.strict_far = False

        # Point tracker parameters
        self.max_tracks = 400
        self.feature_quality_level = 0.01
        self.feature_min_distance = 8
        self.feature_block_size = 3
        self.border = 5
        self.lk_params = {
            'winSize': (21, 21),
            'maxLevel': 3,
            'criteria': (cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT, 30, 0.01),
            'minEigThreshold': 0.0005,
            'flags': 0
        }

        # Robust plane motion parameters
        self.ransac_iterations = 200
        self.ransac_min_inliers = 3
        self.ransac_refine = True
        self.random_seed = 0xBEEF

        # Debug parameters
        self.debug_mode = False

    def get_optical_flow_params(self):
        """Get OpenCV-compatible optical flow parameters"""
        return {
            'winSize': tuple(self.lk_params['winSize']),
            'maxLevel': self.lk_params['maxLevel'],
            'criteria': tuple(self.lk_params['criteria']),
            'minEigThreshold': self.lk_params['minEigThreshold'],
            'flags': self.lk_params['flags']
        }

    @classmethod
    def from_dict(cls, config_dict):
        """Create a config from a dictionary"""
        config = cls()
        for key, value in config_dict.items():
            if hasattr(config, key):
                setattr(config, key, value)
        return config

    @classmethod
    def from_json(cls, filepath):
        """Create a config from a JSON file written by save_json"""
        with open(filepath, 'r') as f:
            return cls.from_dict(json.load(f))

    def to_dict(self):
        """Convert config to a dictionary"""
        return {key: value for key, value in vars(self).items()
                if not key.startswith('_')}

    def save_json(self, filepath):
        """Write the config to a JSON file"""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
