"""
Filtering components for tracked points.

This package provides:
- TrackClassifier: Splits active tracks into plane and infinity sets and
  rejects tracks which break their geometric constraints
"""

from .track_classifier import TrackClassifier, ClassifiedTracks

__all__ = ['TrackClassifier', 'ClassifiedTracks']
