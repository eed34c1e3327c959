import logging
from typing import Optional

import numpy as np

from .ip_types import Marker
from .logging_utils import setup_logger
from .services.calib import CameraModel
from .services.store import DetectionStore
from .strategies.detect_aruco import ArucoDetect, MarkerCodec, resolve_dictionary
from .strategies.dilate_mask import dilate_mask
from .strategies.localize_pnp import PnPLocalize
from .strategies.preprocess import BgraToGray, PreprocessStrategy, frame_from_buffer


def _vec3(vec) -> tuple[float, float, float]:
    a = np.asarray(vec, dtype=np.float32).reshape(-1)
    return float(a[0]), float(a[1]), float(a[2])


def _fmt_matrix(mat) -> str:
    return ", ".join(f"{v:.6f}" for v in np.asarray(mat).reshape(-1))


class ArucoMarkerDetector:
    """
    Detects square fiducial markers in BGRA frames and keeps the pose of each
    marker found by the most recent ``detect_markers`` call.

    One instance per camera thread is the intended use. The store swaps its
    contents under a lock, so queries from another thread see a whole pass,
    but two concurrent ``detect_markers`` calls on one instance are not ordered.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        pre: Optional[PreprocessStrategy] = None,
        codecs: Optional[dict[int, MarkerCodec]] = None,
    ):
        self.log = logger or setup_logger("aruco")
        self.pre = pre or BgraToGray()
        self.store = DetectionStore()
        self._detectors: dict[int, ArucoDetect] = {}
        for key, codec in (codecs or {}).items():
            self._detectors[int(key)] = ArucoDetect(key, codec=codec)

    def _detector_for(self, dictionary_id) -> ArucoDetect:
        key = int(resolve_dictionary(dictionary_id))
        det = self._detectors.get(key)
        if det is None:
            det = ArucoDetect(key)
            self._detectors[key] = det
        return det

    def detect_markers(
        self,
        image_data,
        width: int,
        height: int,
        focal_length,
        principal_point,
        radial_distortion,
        tangential_distortion,
        marker_size: float,
        dictionary_id: int,
    ) -> bool:
        """Run preprocess, detection and pose solve; replace the store. Always True."""
        frame = frame_from_buffer(image_data, width, height)
        gray = self.pre.apply(frame)

        det = self._detector_for(dictionary_id)
        dets = det.detect(gray)
        self.log.info("Completed marker detection: %d ids found", len(dets))
        self.log.debug("Rejected candidates: %d", len(det.rejected))

        camera = CameraModel.from_parameters(
            focal_length, principal_point, radial_distortion, tangential_distortion
        )
        self.log.debug("Camera Matrix: %s", _fmt_matrix(camera.camera_matrix))
        self.log.debug("Distortion Coefficients: %s", _fmt_matrix(camera.dist_coeffs))

        loc = PnPLocalize(camera.camera_matrix, camera.dist_coeffs, float(marker_size))
        poses = loc.estimate(dets)

        markers = []
        for d, pose in zip(dets, poses):
            marker = Marker(d.marker_id, _vec3(pose.tvec), _vec3(pose.rvec))
            self.log.debug("Marker %d position: %.6f, %.6f, %.6f", marker.marker_id, *marker.position)
            self.log.debug("Marker %d rotation: %.6f, %.6f, %.6f", marker.marker_id, *marker.rotation)
            markers.append(marker)

        self.store.replace(markers)
        return True

    def get_detected_marker_ids(self, out_ids, capacity: int) -> bool:
        """
        Write the stored ids (ascending) into ``out_ids``. Returns False and
        writes nothing when ``capacity`` is smaller than the stored count.
        """
        ids = self.store.ids()
        if len(ids) > capacity:
            return False
        for i, marker_id in enumerate(ids):
            out_ids[i] = marker_id
        return True

    def get_detected_marker_pose(self, marker_id: int, out_position, out_rotation) -> bool:
        marker = self.store.get(marker_id)
        if marker is None:
            return False
        for i in range(3):
            out_position[i] = marker.position[i]
            out_rotation[i] = marker.rotation[i]
        return True

    def get_dilated_mask(self, mask, cols: int, rows: int) -> np.ndarray:
        return dilate_mask(mask, cols, rows)

    def detected_ids(self) -> list[int]:
        return self.store.ids()

    def marker(self, marker_id: int) -> Optional[Marker]:
        return self.store.get(marker_id)
