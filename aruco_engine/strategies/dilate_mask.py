import cv2
import numpy as np

DILATION_TYPE = cv2.MORPH_RECT
DILATION_SIZE = 1


def _kernel():
    k = 2 * DILATION_SIZE + 1
    return cv2.getStructuringElement(DILATION_TYPE, (k, k), (DILATION_SIZE, DILATION_SIZE))


def dilate_mask(mask, cols: int, rows: int) -> np.ndarray:
    """
    Dilate a row-major uint16 label mask with a 3x3 rectangle anchored at its
    centre. Returns a new (rows, cols) array; the input is not modified.
    """
    src = np.asarray(mask, dtype=np.uint16).reshape(-1)
    if src.size != int(cols) * int(rows):
        raise ValueError(f"mask holds {src.size} labels, expected {cols}x{rows}")
    src = src.reshape(int(rows), int(cols))
    return cv2.dilate(src, _kernel())
