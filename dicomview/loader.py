"""
loader.py - Turn a DICOM file into a displayable 8-bit grayscale raster.

``load_image`` is the only entry point. It never raises: a file that
cannot be parsed, has no pixel data, or cannot be rendered gives ``None``.
The cause is logged at DEBUG; the caller only learns that there
is nothing to show.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from pydicom.dataset import Dataset
from pydicom.pixels import apply_color_lut, apply_modality_lut

from dicomview.codec_registry import ensure_registered, open_dataset
from dicomview.windowing import Window, render_8bit, select_window

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights, used to reduce colour data to grey
_LUMA = np.array([0.299, 0.587, 0.114])


@dataclass(frozen=True)
class DecodedImage:
    """An owned 8-bit grayscale raster, row-major, stride == width."""
    width: int
    height: int
    pixels: bytes
    window: Optional[Window] = None

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}.")
        if len(self.pixels) != self.width * self.height:
            raise ValueError(
                f"Pixel buffer holds {len(self.pixels)} bytes, "
                f"expected {self.width * self.height} for {self.width}x{self.height}."
            )

    def as_array(self) -> np.ndarray:
        """Read-only (height, width) uint8 view of the pixel buffer."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(self.height, self.width)


def _first_frame(arr: np.ndarray, ds: Dataset) -> np.ndarray:
    """Drop the frame axis of a multi-frame array, keeping frame 0."""
    frames = int(ds.get("NumberOfFrames", 1) or 1)
    if frames > 1:
        logger.debug("Multi-frame object (%d frames); showing frame 0 only.", frames)
        return arr[0]
    return arr


def _to_grayscale(arr: np.ndarray, ds: Dataset) -> Optional[np.ndarray]:
    """
    Return a 2-D array of modality values, or None if the layout is unusable.

    pydicom already converts YBR data to RGB when decoding, so colour
    arrives here as (rows, cols, 3).
    """
    photometric = str(ds.get("PhotometricInterpretation", "")).strip().upper()

    if photometric == "PALETTE COLOR":
        arr = apply_color_lut(arr, ds)

    if arr.ndim == 3 and arr.shape[-1] == 3:
        return arr.astype(np.float64) @ _LUMA

    if arr.ndim != 2:
        logger.debug("Unsupported pixel array shape %s.", arr.shape)
        return None

    return apply_modality_lut(arr, ds)


def _render(ds: Dataset) -> Optional[DecodedImage]:
    """Decode, window and quantise the pixel data of *ds*."""
    arr = _first_frame(ds.pixel_array, ds)
    values = _to_grayscale(arr, ds)
    if values is None or values.size == 0:
        return None

    window = select_window(ds, values)
    photometric = str(ds.get("PhotometricInterpretation", "")).strip().upper()
    rendered = render_8bit(values, window, invert=photometric == "MONOCHROME1")

    height, width = rendered.shape
    # tobytes() copies, so the result owns its buffer
    return DecodedImage(
        width=int(width),
        height=int(height),
        pixels=np.ascontiguousarray(rendered).tobytes(),
        window=window,
    )


def load_image(path: str) -> Optional[DecodedImage]:
    """
    Load the DICOM file at *path* and render it for display.

    Steps:
    1. Parse the file. Parse failures give None.
    2. Decode the pixel data (compressed syntaxes through the registered
       pydicom plugins). A dataset without pixel data gives None.
    3. Choose the window: stored preset 0, else observed min/max.
    4. Render to 8 bits and copy into a fresh buffer.

    Parameters
    ----------
    path : str
        Path to a DICOM file.

    Returns
    -------
    DecodedImage or None
        None when the file cannot be shown, whatever the cause.
    """
    ensure_registered()

    try:
        with open_dataset(path) as ds:
            if "PixelData" not in ds:
                logger.debug("No pixel data in %s.", path)
                return None
            image = _render(ds)
    except Exception as exc:
        logger.debug("Could not load image from %s: %s", path, exc)
        return None

    if image is None:
        logger.debug("Pixel data in %s could not be rendered.", path)
        return None

    logger.debug(
        "Loaded %s (%dx%d, %s window centre=%.1f width=%.1f).",
        path, image.width, image.height,
        image.window.source, image.window.center, image.window.width,
    )
    return image
