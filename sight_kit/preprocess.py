from typing import Tuple

import numpy as np


def stretch_resize(image: np.ndarray, input_size: int = 640) -> Tuple[np.ndarray, Tuple[float, float]]:
    """
    Resize to a square `input_size` x `input_size` image without padding.

    The aspect ratio is not preserved, so horizontal and vertical scale factors
    differ; detections are mapped back with each factor independently.

    Returns:
        resized: (input_size, input_size, C) image
        ratio: (w_ratio, h_ratio) as new / old
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for stretch_resize(). Install with `pip install opencv-python`.") from e

    h, w = image.shape[:2]
    if w <= 0 or h <= 0:
        raise ValueError(f"Cannot resize an empty image of shape {image.shape}")

    ratio = (input_size / w, input_size / h)
    if (w, h) == (input_size, input_size):
        return image, ratio

    resized = cv2.resize(image, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    return resized, ratio


def image_to_blob(pixels: np.ndarray, *, channels_first: bool = True, bgr: bool = False) -> np.ndarray:
    """
    Normalize an (H, W, 3) uint8 image to float32 in [0, 1] with a batch axis.

    channels_first=True gives NCHW (ONNX / TorchScript), False gives NHWC.
    Set bgr=True when the input comes straight from OpenCV.
    """

    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(pixels, 'shape', None)}")

    img = pixels[:, :, ::-1] if bgr else pixels
    blob = img.astype(np.float32) / 255.0
    if channels_first:
        blob = np.transpose(blob, (2, 0, 1))
    return np.ascontiguousarray(blob[None, ...])
