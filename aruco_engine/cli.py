import argparse
import logging
import sys

import cv2
import numpy as np

from aruco_engine.config import DetectorConfig, load_config
from aruco_engine.factory import StrategyFactory
from aruco_engine.strategies.detect_aruco import resolve_dictionary


def _to_bgra(img):
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGRA)
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2BGRA)
    return img


def main(argv=None):
    ap = argparse.ArgumentParser(description="Detect ArUco markers and print their poses.")
    ap.add_argument("image", help="Path to an image file")
    ap.add_argument("--config", default=None, help="JSON/YAML detector config")
    ap.add_argument("--calib", default=None, help="OpenCV FileStorage calibration (camera_matrix, dist_coeffs)")
    ap.add_argument("--dict", default=None, help="Dictionary name (4x4_50) or numeric id")
    ap.add_argument("--marker-size", type=float, default=None)
    ap.add_argument("--focal", type=float, nargs=2, default=None, metavar=("FX", "FY"))
    ap.add_argument("--principal", type=float, nargs=2, default=None, metavar=("CX", "CY"))
    ap.add_argument("--radial", type=float, nargs=3, default=None, metavar=("R1", "R2", "R3"))
    ap.add_argument("--tangential", type=float, nargs=2, default=None, metavar=("T1", "T2"))
    ap.add_argument("--dilate-mask", default=None, help="16-bit label mask to dilate")
    ap.add_argument("--out", default=None, help="Where to write the dilated mask")
    ap.add_argument("--log-file", default=None, help="Also write log records to this file")
    ap.add_argument("--verbose", action="store_true")

    args = ap.parse_args(argv)

    config = load_config(args.config) if args.config else DetectorConfig()
    config.apply_overrides(
        calibration_path=args.calib,
        dictionary=args.dict,
        marker_size=args.marker_size,
        focal_length=args.focal,
        principal_point=args.principal,
        radial_distortion=args.radial,
        tangential_distortion=args.tangential,
        log_path=args.log_file,
    )
    if args.verbose:
        config.log_level = "DEBUG"

    pre, det, camera = StrategyFactory.from_config(config)
    detector = StrategyFactory.build_detector(config, pre=pre, det=det)
    log = detector.log

    img = cv2.imread(args.image, cv2.IMREAD_UNCHANGED)
    if img is None:
        log.error("could not read image: %s", args.image)
        return 2
    bgra = np.ascontiguousarray(_to_bgra(img))
    h, w = bgra.shape[:2]

    detector.detect_markers(
        bgra,
        w,
        h,
        camera.focal_length,
        camera.principal_point,
        camera.radial_distortion,
        camera.tangential_distortion,
        config.marker_size,
        int(resolve_dictionary(config.dictionary)),
    )

    for marker_id in detector.detected_ids():
        pos = [0.0] * 3
        rot = [0.0] * 3
        detector.get_detected_marker_pose(marker_id, pos, rot)
        print(
            f"{marker_id} "
            f"position={pos[0]:.6f},{pos[1]:.6f},{pos[2]:.6f} "
            f"rotation={rot[0]:.6f},{rot[1]:.6f},{rot[2]:.6f}"
        )

    if args.dilate_mask:
        mask = cv2.imread(args.dilate_mask, cv2.IMREAD_UNCHANGED)
        if mask is None:
            log.error("could not read mask: %s", args.dilate_mask)
            return 2
        if mask.ndim == 3:
            mask = mask[:, :, 0]
        rows, cols = mask.shape[:2]
        dilated = detector.get_dilated_mask(mask.astype(np.uint16), cols, rows)
        out = args.out or args.dilate_mask.rsplit(".", 1)[0] + "_dilated.png"
        cv2.imwrite(out, dilated)
        log.info("dilated mask written: %s", out)

    return 0


if __name__ == "__main__":
    sys.exit(main())
