#!/usr/bin/env python3
"""
Run plane/infinity visual odometry on a video file or camera.
"""

import argparse
import csv
import glob
import logging
import math
import os
import time
from datetime import datetime

import cv2

from planevo import (
    PlaneInfinityOdometry, OdometryConfig, CameraCalibration, plane_to_camera_from_height
)
from planevo.core.utils import se2_yaw

logger = logging.getLogger("run_odometry")


def parse_args():
    parser = argparse.ArgumentParser(description='Estimate camera motion over a flat ground plane')
    parser.add_argument('source', type=str,
                        help='Video file, image glob (e.g. "frames/*.png") or camera index')
    parser.add_argument('--calibration', type=str, default='camera_calibration.npz',
                        help='npz file with camera_matrix and dist_coeffs')
    parser.add_argument('--config', type=str, default=None,
                        help='JSON file with OdometryConfig values')
    parser.add_argument('--height', type=float, default=1.0,
                        help='Camera height above the ground plane')
    parser.add_argument('--pitch', type=float, default=20.0,
                        help='Downward tilt of the camera in degrees')
    parser.add_argument('--strict-far', action='store_true',
                        help='Discard far points whose motion is not a pure yaw')
    parser.add_argument('--max-frames', type=int, default=None,
                        help='Stop after this many frames')
    parser.add_argument('--save-output', action='store_true',
                        help='Save the trajectory as CSV')
    parser.add_argument('--verbose', action='store_true',
                        help='Log per-frame details')
    return parser.parse_args()


def iter_frames(source):
    """Yield images from a camera index, an image glob or a video file"""
    if any(ch in source for ch in '*?['):
        for path in sorted(glob.glob(source)):
            image = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
            if image is None:
                raise FileNotFoundError(f"Failed to read image: {path}")
            yield image
        return

    cap = cv2.VideoCapture(int(source) if source.isdigit() else source)
    if not cap.isOpened():
        raise IOError(f"Could not open video source: {source}")
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield frame
    finally:
        cap.release()


def save_trajectory_to_csv(rows, filename, output_dir='output'):
    """Write (frame, segment, x, y, yaw) rows to a CSV file"""
    os.makedirs(output_dir, exist_ok=True)
    filepath = os.path.join(output_dir, filename)
    with open(filepath, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(['frame', 'segment', 'x', 'y', 'yaw'])
        for frame, segment, x, y, yaw in rows:
            writer.writerow([frame, segment, f"{x:.6f}", f"{y:.6f}", f"{yaw:.6f}"])
    logger.info("Trajectory saved to %s", filepath)
    return filepath


def run(odometry, frames, max_frames=None, status_interval=10):
    """
    Feed frames to the odometry and collect the pose of every frame.

    The odometry is reset after a fault and a new segment starts. Each
    segment has its own world frame.

    Args:
        odometry: PlaneInfinityOdometry with calibration set
        frames: Iterable of images
        max_frames: Stop after this many frames (None for all)
        status_interval: Log a status line every this many frames

    Returns:
        rows: List of (frame, segment, x, y, yaw) for every frame without a fault
        fault_count: Number of faults
    """
    rows = []
    segment = 0
    fault_count = 0
    frame_count = 0
    start_time = time.time()

    try:
        for frame in frames:
            if odometry.process(frame):
                T = odometry.get_curr_to_world_2d()
                rows.append((frame_count, segment, float(T[0, 2]), float(T[1, 2]),
                             se2_yaw(T)))
            else:
                # Internal state is inconsistent after a fault
                fault_count += 1
                segment += 1
                logger.warning("Motion estimation fault at frame %d, resetting", frame_count)
                odometry.reset()

            if frame_count % status_interval == 0:
                stats = odometry.get_motion_stats()
                elapsed = time.time() - start_time
                fps = frame_count / elapsed if elapsed > 0 else 0
                logger.info(
                    "Frame %d: %.1f FPS | plane inliers %d | far inliers %d | "
                    "Position=[%.2f, %.2f] yaw=%.1f deg",
                    frame_count, fps, stats['close_inlier_count'], stats['far_inlier_count'],
                    stats['position'][0], stats['position'][1], math.degrees(stats['yaw'])
                )

            frame_count += 1
            if max_frames is not None and frame_count >= max_frames:
                break
    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    logger.info("Processed %d frames with %d faults", frame_count, fault_count)
    return rows, fault_count


def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s'
    )

    config = OdometryConfig.from_json(args.config) if args.config else OdometryConfig()
    config.debug_mode = config.debug_mode or args.verbose
    if args.strict_far:
        config.strict_far = True

    calibration = CameraCalibration.from_npz(args.calibration)

    odometry = PlaneInfinityOdometry(config)
    odometry.set_intrinsic(calibration)
    odometry.set_extrinsic(plane_to_camera_from_height(args.height, math.radians(args.pitch)))

    rows, _ = run(odometry, iter_frames(args.source), args.max_frames)

    if args.save_output:
        save_trajectory_to_csv(
            rows,
            filename=f"trajectory_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
        )


if __name__ == "__main__":
    main()
