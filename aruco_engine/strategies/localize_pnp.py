import logging

import cv2, numpy as np
from ..ip_types import Detection, Pose

log = logging.getLogger(__name__)


def marker_object_points(marker_length: float) -> np.ndarray:
    """Marker corners in the marker frame, in detector corner order (TL, TR, BR, BL)."""
    h = marker_length / 2.0
    return np.array(
        [[-h, h, 0.0], [h, h, 0.0], [h, -h, 0.0], [-h, -h, 0.0]],
        dtype=np.float64,
    )


class PnPLocalize:
    def __init__(self, K, dist, marker_length: float):
        self.K, self.dist, self.L = K, dist, marker_length

    def _solve(self, corners, length: float) -> Pose:
        img_pts = np.asarray(corners, dtype=np.float64).reshape(4, 2)
        _ok, rvec, tvec = cv2.solvePnP(
            marker_object_points(length),
            img_pts,
            self.K,
            self.dist,
            flags=cv2.SOLVEPNP_IPPE_SQUARE,
        )
        return Pose(rvec.reshape(3), tvec.reshape(3))

    def estimate(self, detections: list[Detection]) -> list[Pose]:
        poses = []
        if self.L <= 0:
            log.warning("marker length %s is not positive; skipping pose solve", self.L)
            return poses
        # Each marker is solved independently
        for det in detections:
            poses.append(self._solve(det.corners, self.L))
        return poses

