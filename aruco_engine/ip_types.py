from dataclasses import dataclass
from typing import Any, Tuple

Vec3 = Tuple[float, float, float]


@dataclass
class Frame:
    idx: int
    ts_iso: str
    image: Any  # numpy array, (h, w, 4) BGRA or (h, w) gray


@dataclass
class Detection:
    marker_id: int
    corners: Any  # (1,4,2) ndarray
    rvec: Any | None = None
    tvec: Any | None = None


@dataclass
class Pose:
    rvec: Any
    tvec: Any


@dataclass(frozen=True)
class Marker:
    marker_id: int
    position: Vec3
    rotation: Vec3  # Rodrigues rotation vector
