from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

import cv2, numpy as np


def _take(values: Sequence[float], count: int, what: str) -> list[float]:
    vals = [float(v) for v in np.asarray(values, dtype=np.float64).reshape(-1)]
    if len(vals) != count:
        raise ValueError(f"{what} needs {count} values, got {len(vals)}")
    return vals


def build_camera_matrix(focal_length: Sequence[float], principal_point: Sequence[float]) -> np.ndarray:
    fx, fy = _take(focal_length, 2, "focal_length")
    cx, cy = _take(principal_point, 2, "principal_point")
    K = np.zeros((3, 3), dtype=np.float64)
    K[0, 0] = fx
    K[0, 2] = cx
    K[1, 1] = fy
    K[1, 2] = cy
    K[2, 2] = 1.0
    return K


def build_dist_coeffs(radial: Sequence[float], tangential: Sequence[float]) -> np.ndarray:
    """OpenCV order: [r1, r2, t1, t2, r3]. The third radial term goes last."""
    r1, r2, r3 = _take(radial, 3, "radial_distortion")
    t1, t2 = _take(tangential, 2, "tangential_distortion")
    return np.array([[r1, r2, t1, t2, r3]], dtype=np.float64)


def load_calib(path: str) -> Tuple[np.ndarray, np.ndarray, tuple[int,int]]:
    if not Path(path).exists():
        raise FileNotFoundError(f"Calibration not found: {path}")
    fs = cv2.FileStorage(path, cv2.FILE_STORAGE_READ)
    if not fs.isOpened():
        raise FileNotFoundError(f"Calibration not readable: {path}")
    K = fs.getNode("camera_matrix").mat()
    dist = fs.getNode("dist_coeffs").mat()
    w = int(fs.getNode("image_width").real()); h = int(fs.getNode("image_height").real())
    fs.release()
    return K, dist, (w, h)


@dataclass
class CameraModel:
    camera_matrix: np.ndarray
    dist_coeffs: np.ndarray

    @classmethod
    def from_parameters(cls, focal_length, principal_point, radial_distortion, tangential_distortion) -> "CameraModel":
        return cls(
            build_camera_matrix(focal_length, principal_point),
            build_dist_coeffs(radial_distortion, tangential_distortion),
        )

    @classmethod
    def from_file(cls, path: str) -> "CameraModel":
        K, dist, _ = load_calib(path)
        return cls(np.asarray(K, dtype=np.float64), np.asarray(dist, dtype=np.float64).reshape(1, -1))

    @property
    def focal_length(self) -> tuple[float, float]:
        return float(self.camera_matrix[0, 0]), float(self.camera_matrix[1, 1])

    @property
    def principal_point(self) -> tuple[float, float]:
        return float(self.camera_matrix[0, 2]), float(self.camera_matrix[1, 2])

    @property
    def radial_distortion(self) -> tuple[float, float, float]:
        d = self._padded()
        return d[0], d[1], d[4]

    @property
    def tangential_distortion(self) -> tuple[float, float]:
        d = self._padded()
        return d[2], d[3]

    def _padded(self) -> list[float]:
        d = [float(v) for v in self.dist_coeffs.reshape(-1)]
        return (d + [0.0] * 5)[:5]
