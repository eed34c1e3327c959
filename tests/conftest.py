import cv2
import numpy as np
import pytest

from aruco_engine.strategies.detect_aruco import MarkerDictionary, get_dict
from aruco_engine.strategies.localize_pnp import marker_object_points

WIDTH, HEIGHT = 640, 480
FOCAL = (800.0, 800.0)
PRINCIPAL = (319.5, 239.5)
NO_RADIAL = (0.0, 0.0, 0.0)
NO_TANGENTIAL = (0.0, 0.0)
MARKER_LENGTH = 0.1

# Marker facing the camera: marker +y is image-up, marker +z points at the camera.
FACING = np.diag([1.0, -1.0, -1.0])


def camera_matrix():
    return np.array(
        [[FOCAL[0], 0.0, PRINCIPAL[0]], [0.0, FOCAL[1], PRINCIPAL[1]], [0.0, 0.0, 1.0]]
    )


def facing_rvec(tilt_x: float = 0.0, tilt_y: float = 0.0) -> np.ndarray:
    tilt, _ = cv2.Rodrigues(np.array([tilt_x, tilt_y, 0.0]))
    rvec, _ = cv2.Rodrigues(FACING @ tilt)
    return rvec.reshape(3)


def _marker_tile(marker_id: int, side: int, dictionary) -> np.ndarray:
    d = get_dict(dictionary)
    if hasattr(cv2.aruco, "generateImageMarker"):
        return cv2.aruco.generateImageMarker(d, marker_id, side)
    return cv2.aruco.drawMarker(d, marker_id, side)


def render_marker(marker_id, rvec, tvec, length=MARKER_LENGTH, dictionary=MarkerDictionary.DICT_4X4_50):
    """Gray image of one marker at the given pose on a white background."""
    side = 240
    tile = _marker_tile(marker_id, side, dictionary)
    img_pts, _ = cv2.projectPoints(
        marker_object_points(length),
        np.asarray(rvec, dtype=np.float64),
        np.asarray(tvec, dtype=np.float64),
        camera_matrix(),
        np.zeros(5),
    )
    src = np.array(
        [[-0.5, -0.5], [side - 0.5, -0.5], [side - 0.5, side - 0.5], [-0.5, side - 0.5]],
        dtype=np.float32,
    )
    H = cv2.getPerspectiveTransform(src, img_pts.reshape(4, 2).astype(np.float32))
    return cv2.warpPerspective(
        tile, H, (WIDTH, HEIGHT),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=255,
    )


def to_bgra(gray) -> np.ndarray:
    return np.ascontiguousarray(cv2.cvtColor(gray, cv2.COLOR_GRAY2BGRA))


@pytest.fixture
def blank_frame():
    return np.full((HEIGHT, WIDTH, 4), 128, dtype=np.uint8)


@pytest.fixture
def single_marker_frame():
    """(bgra, marker_id, rvec, tvec) for one tilted marker."""
    rvec = facing_rvec(tilt_x=0.35)
    tvec = np.array([0.02, -0.01, 0.5])
    gray = render_marker(7, rvec, tvec)
    return to_bgra(gray), 7, rvec, tvec


@pytest.fixture
def two_marker_frame():
    left = render_marker(9, facing_rvec(), np.array([-0.1, 0.0, 0.6]))
    right = render_marker(3, facing_rvec(), np.array([0.1, 0.0, 0.6]))
    return to_bgra(np.minimum(left, right))


def rotation_error(rvec_a, rvec_b) -> float:
    Ra, _ = cv2.Rodrigues(np.asarray(rvec_a, dtype=np.float64).reshape(3))
    Rb, _ = cv2.Rodrigues(np.asarray(rvec_b, dtype=np.float64).reshape(3))
    cos = (np.trace(Ra.T @ Rb) - 1.0) / 2.0
    return float(np.arccos(np.clip(cos, -1.0, 1.0)))
