from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Optional

import cv2
import numpy as np
from ..ip_types import Frame, Detection


class MarkerDictionary(IntEnum):
    """OpenCV predefined dictionaries, numbered as cv2.aruco numbers them."""
    DICT_4X4_50 = cv2.aruco.DICT_4X4_50
    DICT_4X4_100 = cv2.aruco.DICT_4X4_100
    DICT_4X4_250 = cv2.aruco.DICT_4X4_250
    DICT_4X4_1000 = cv2.aruco.DICT_4X4_1000
    DICT_5X5_50 = cv2.aruco.DICT_5X5_50
    DICT_5X5_100 = cv2.aruco.DICT_5X5_100
    DICT_5X5_250 = cv2.aruco.DICT_5X5_250
    DICT_5X5_1000 = cv2.aruco.DICT_5X5_1000
    DICT_6X6_50 = cv2.aruco.DICT_6X6_50
    DICT_6X6_100 = cv2.aruco.DICT_6X6_100
    DICT_6X6_250 = cv2.aruco.DICT_6X6_250
    DICT_6X6_1000 = cv2.aruco.DICT_6X6_1000
    DICT_7X7_50 = cv2.aruco.DICT_7X7_50
    DICT_7X7_100 = cv2.aruco.DICT_7X7_100
    DICT_7X7_250 = cv2.aruco.DICT_7X7_250
    DICT_7X7_1000 = cv2.aruco.DICT_7X7_1000
    DICT_ARUCO_ORIGINAL = cv2.aruco.DICT_ARUCO_ORIGINAL
    DICT_APRILTAG_16h5 = cv2.aruco.DICT_APRILTAG_16h5
    DICT_APRILTAG_25h9 = cv2.aruco.DICT_APRILTAG_25h9
    DICT_APRILTAG_36h10 = cv2.aruco.DICT_APRILTAG_36h10
    DICT_APRILTAG_36h11 = cv2.aruco.DICT_APRILTAG_36h11


def resolve_dictionary(key) -> MarkerDictionary:
    """
    Map an integer id, a MarkerDictionary or a name ("4x4_50", "DICT_4X4_50")
    onto a MarkerDictionary. Unknown names fall back to 4x4_50; unknown integer
    ids raise ValueError.
    """
    if isinstance(key, MarkerDictionary):
        return key
    if isinstance(key, (int, np.integer)):
        try:
            return MarkerDictionary(int(key))
        except ValueError:
            raise ValueError(f"unknown marker dictionary id: {key}") from None

    name = (key or "").strip()
    if name.isdigit():
        return resolve_dictionary(int(name))
    if name.upper().startswith("DICT_"):
        name = name[5:]
    for member in MarkerDictionary:
        if member.name[5:].lower() == name.lower():
            return member
    return MarkerDictionary.DICT_4X4_50


def get_dict(key):
    """
    Predefined dictionary resolver.
    Works on OpenCV 4.12 (getPredefinedDictionary) and older (Dictionary_get).
    """
    code = int(resolve_dictionary(key))

    if hasattr(cv2.aruco, "getPredefinedDictionary"):           # OpenCV >= 4.7
        return cv2.aruco.getPredefinedDictionary(code)
    elif hasattr(cv2.aruco, "Dictionary_get"):                   # Older OpenCV
        return cv2.aruco.Dictionary_get(code)
    else:                                                        # Very old fallback
        return cv2.aruco.Dictionary(code)

def _make_params():
    """Create detector parameters across OpenCV versions."""
    if hasattr(cv2.aruco, "DetectorParameters_create"):
        return cv2.aruco.DetectorParameters_create()
    return cv2.aruco.DetectorParameters()


class MarkerCodec(ABC):
    """Identifier codec: finds and decodes square markers of one dictionary."""

    @abstractmethod
    def detect(self, gray) -> tuple[list[Detection], list]: ...

    @abstractmethod
    def decode(self, corners, gray) -> Optional[int]: ...


class ArucoCodec(MarkerCodec):
    """
    Codec over an OpenCV predefined dictionary with default detector
    parameters (adaptive thresholding, contour filtering, no corner refinement).
    """
    CELL_PX = 10

    def __init__(self, dictionary=MarkerDictionary.DICT_4X4_50):
        self.kind = resolve_dictionary(dictionary)
        self.dictionary = get_dict(self.kind)
        self.params = _make_params()
        self._detector = None
        # Prefer the newer ArucoDetector API if present
        if hasattr(cv2.aruco, "ArucoDetector"):
            self._detector = cv2.aruco.ArucoDetector(self.dictionary, self.params)

    def _run(self, gray):
        if self._detector is not None:
            return self._detector.detectMarkers(gray)
        return cv2.aruco.detectMarkers(gray, self.dictionary, parameters=self.params)

    def detect(self, gray) -> tuple[list[Detection], list]:
        corners, ids, rejected = self._run(gray)

        dets: list[Detection] = []
        if ids is not None and len(ids) > 0:
            for i, mid in enumerate(ids.flatten()):
                c = np.asarray(corners[i], dtype=np.float32).reshape(1, 4, 2)
                dets.append(Detection(int(mid), c))
        return dets, list(rejected) if rejected is not None else []

    def _bits(self) -> int:
        size = getattr(self.dictionary, "markerSize", None)
        return int(size) if size else 6

    def decode(self, corners, gray) -> Optional[int]:
        """
        Rectify one candidate quad onto a canonical square surrounded by a white
        quiet zone and read its bit pattern. Returns None if it does not decode.
        """
        src = np.asarray(corners, dtype=np.float32).reshape(4, 2)
        side = (self._bits() + 2) * self.CELL_PX
        pad = 2 * self.CELL_PX
        canvas = side + 2 * pad
        dst = np.array(
            [[pad, pad], [pad + side, pad], [pad + side, pad + side], [pad, pad + side]],
            dtype=np.float32,
        )
        H = cv2.getPerspectiveTransform(src, dst)
        warped = cv2.warpPerspective(
            gray, H, (canvas, canvas),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=255,
        )
        ring = np.full_like(warped, 255)
        ring[pad:pad + side, pad:pad + side] = warped[pad:pad + side, pad:pad + side]

        dets, _rej = self.detect(ring)
        if not dets:
            return None
        centre = np.array([canvas / 2.0, canvas / 2.0])
        best = min(dets, key=lambda d: np.linalg.norm(d.corners.reshape(4, 2).mean(axis=0) - centre))
        return best.marker_id


class ArucoDetect:
    """
    Strategy: detect markers in a grayscale frame.
    Returns a list[Detection] with (marker_id, corners, rvec=None, tvec=None).
    Pose is estimated later by the Localize strategy.
    """
    def __init__(self, dictionary=MarkerDictionary.DICT_4X4_50, codec: Optional[MarkerCodec] = None):
        self.codec = codec or ArucoCodec(dictionary)
        self.rejected: list = []

    def detect(self, f: Frame) -> list[Detection]:
        dets, self.rejected = self.codec.detect(f.image)
        return dets
