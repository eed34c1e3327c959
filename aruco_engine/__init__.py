"""ArUco marker detection and single-marker pose estimation."""

from .config import DetectorConfig, load_config
from .detector import ArucoMarkerDetector
from .ip_types import Detection, Frame, Marker, Pose
from .strategies.detect_aruco import ArucoCodec, MarkerCodec, MarkerDictionary
from .strategies.dilate_mask import dilate_mask

__all__ = [
    "ArucoCodec",
    "ArucoMarkerDetector",
    "Detection",
    "DetectorConfig",
    "Frame",
    "Marker",
    "MarkerCodec",
    "MarkerDictionary",
    "Pose",
    "dilate_mask",
    "load_config",
]
