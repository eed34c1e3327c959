from abc import ABC, abstractmethod
import cv2
import numpy as np
from ..ip_types import Frame


def frame_from_buffer(data, width: int, height: int, idx: int = 0, ts_iso: str = "") -> Frame:
    """
    Wrap a caller-owned BGRA buffer (row-major, 4 bytes/pixel) as a Frame.
    The image is a view, not a copy; it must not outlive the call.
    """
    if isinstance(data, np.ndarray):
        flat = data.reshape(-1)
        if flat.dtype != np.uint8:
            flat = flat.view(np.uint8)
    else:
        flat = np.frombuffer(data, dtype=np.uint8)

    expected = int(width) * int(height) * 4
    if flat.size < expected:
        raise ValueError(
            f"image buffer holds {flat.size} bytes, expected {expected} for {width}x{height} BGRA"
        )
    return Frame(idx, ts_iso, flat[:expected].reshape(int(height), int(width), 4))


class PreprocessStrategy(ABC):
    @abstractmethod
    def apply(self, f: Frame) -> Frame: ...


class BgraToGray(PreprocessStrategy):
    """Luma conversion of a BGRA frame; alpha is ignored."""

    def apply(self, f: Frame) -> Frame:
        img = f.image
        if img.ndim == 2:
            return f
        code = cv2.COLOR_BGRA2GRAY if img.shape[2] == 4 else cv2.COLOR_BGR2GRAY
        g = cv2.cvtColor(img, code)
        return Frame(f.idx, f.ts_iso, g)
