"""
windowing.py - Window/level selection and rendering to 8-bit grayscale.

WHY THIS MATTERS
----------------
Stored DICOM pixel values routinely span 12 or 16 bits, but a display
shows 256 grey levels. A *window* (centre and width) picks the range of
values that is spread over those 256 levels; everything below is black,
everything above is white.

Selection policy used by the loader:
    1. The first window preset stored in the header
       (WindowCenter[0] / WindowWidth[0]), as chosen by the modality or
       the radiologist.
    2. If there is none, or it cannot be applied, a window spanning the
       observed minimum and maximum value, so every image shows contrast.

The transfer functions follow DICOM PS3.3 C.11.2.1.2 (LINEAR,
LINEAR_EXACT, SIGMOID), with the output range fixed to [0, 255].

References
----------
- DICOM PS3.3, attribute (0028,1050)/(0028,1051): WindowCenter/WindowWidth
- DICOM PS3.3, attribute (0028,1056): VOILUTFunction
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from pydicom.dataset import Dataset
from pydicom.multival import MultiValue

logger = logging.getLogger(__name__)

OUTPUT_MIN = 0.0
OUTPUT_MAX = 255.0

SOURCE_PRESET = "preset"
SOURCE_MINMAX = "minmax"

VOI_FUNCTIONS = ("LINEAR", "LINEAR_EXACT", "SIGMOID")


@dataclass(frozen=True)
class Window:
    """A window centre/width pair and where it came from."""
    center: float
    width: float
    source: str = SOURCE_PRESET
    function: str = "LINEAR"


def _first_value(value) -> Optional[float]:
    """Return element 0 of a (possibly multi-valued) DS element as a float."""
    if value is None:
        return None
    if isinstance(value, (MultiValue, list, tuple)):
        if len(value) == 0:
            return None
        value = value[0]
    if value == "" or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def voi_function(ds: Dataset) -> str:
    """VOILUTFunction from the header, LINEAR when absent or unknown."""
    func = str(ds.get("VOILUTFunction", "") or "").strip().upper()
    if not func:
        return "LINEAR"
    if func not in VOI_FUNCTIONS:
        logger.debug("Unknown VOILUTFunction %r; using LINEAR.", func)
        return "LINEAR"
    return func


def is_usable(window: Window) -> bool:
    """LINEAR needs width >= 1; the other functions need width > 0."""
    if not np.isfinite(window.center) or not np.isfinite(window.width):
        return False
    if window.function == "LINEAR":
        return window.width >= 1.0
    return window.width > 0.0


def preset_window(ds: Dataset, index: int = 0) -> Optional[Window]:
    """
    Return the stored window preset at *index*, or None if there is none.

    Parameters
    ----------
    ds : Dataset
        Loaded pydicom Dataset (header is enough).
    index : int
        Which of the stored presets to use. The viewer always uses 0.

    Returns
    -------
    Window or None
    """
    centers = ds.get("WindowCenter")
    widths = ds.get("WindowWidth")
    if centers is None or widths is None:
        return None

    if index:
        if not isinstance(centers, MultiValue) or not isinstance(widths, MultiValue):
            return None
        if index >= len(centers) or index >= len(widths):
            return None
        centers, widths = centers[index], widths[index]

    center = _first_value(centers)
    width = _first_value(widths)
    if center is None or width is None:
        return None
    return Window(center=center, width=width, source=SOURCE_PRESET, function=voi_function(ds))


def minmax_window(values: np.ndarray) -> Window:
    """
    Build a LINEAR window that maps min(values) to 0 and max(values) to 255.

    With ``center = (min + max + 1) / 2`` and ``width = max - min + 1``
    the LINEAR transfer function puts the lower edge exactly on the
    minimum and the upper edge exactly on the maximum.
    """
    vmin = float(np.min(values))
    vmax = float(np.max(values))
    return Window(
        center=(vmin + vmax + 1.0) / 2.0,
        width=vmax - vmin + 1.0,
        source=SOURCE_MINMAX,
    )


def apply_window(values: np.ndarray, window: Window) -> np.ndarray:
    """
    Map *values* through *window* and return a float array in [0, 255].

    Parameters
    ----------
    values : np.ndarray
        Modality values (after rescale slope/intercept).
    window : Window
        Window to apply. Must satisfy :func:`is_usable`.

    Returns
    -------
    np.ndarray
        Float64 array with the same shape as *values*.

    Raises
    ------
    ValueError
        If the window width is not valid for its function.
    """
    if not is_usable(window):
        raise ValueError(
            f"Window width must be >= 1 for LINEAR and > 0 otherwise, "
            f"got width={window.width} ({window.function})."
        )

    x = values.astype(np.float64)
    c, w = window.center, window.width
    y_range = OUTPUT_MAX - OUTPUT_MIN

    if window.function == "SIGMOID":
        return y_range / (1.0 + np.exp(-4.0 * (x - c) / w)) + OUTPUT_MIN

    if window.function == "LINEAR_EXACT":
        lower, upper = c - w / 2.0, c + w / 2.0
        out = ((x - c) / w + 0.5) * y_range + OUTPUT_MIN
    else:
        lower = c - 0.5 - (w - 1.0) / 2.0
        upper = c - 0.5 + (w - 1.0) / 2.0
        if w > 1.0:
            out = ((x - (c - 0.5)) / (w - 1.0) + 0.5) * y_range + OUTPUT_MIN
        else:
            # Width 1 is a hard threshold: nothing falls inside the ramp
            out = np.full_like(x, OUTPUT_MAX)

    out = np.where(x <= lower, OUTPUT_MIN, out)
    out = np.where(x > upper, OUTPUT_MAX, out)
    return out


def select_window(ds: Dataset, values: np.ndarray) -> Window:
    """
    Pick the window for *values*: stored preset 0 first, min/max otherwise.

    Parameters
    ----------
    ds : Dataset
        Dataset the values were decoded from.
    values : np.ndarray
        Modality values the window will be applied to.

    Returns
    -------
    Window
    """
    window = preset_window(ds, index=0)
    if window is not None and is_usable(window):
        logger.debug("Using stored window preset: centre=%.1f, width=%.1f", window.center, window.width)
        return window

    if window is not None:
        logger.debug("Stored window preset is unusable (width=%s); using min/max.", window.width)
    window = minmax_window(values)
    logger.debug("Applying min/max window: centre=%.1f, width=%.1f", window.center, window.width)
    return window


def render_8bit(values: np.ndarray, window: Window, invert: bool = False) -> np.ndarray:
    """
    Window *values* and quantise to uint8.

    Parameters
    ----------
    values : np.ndarray
        Modality values.
    window : Window
        Window to apply.
    invert : bool
        True for MONOCHROME1 data, where the lowest value is white.

    Returns
    -------
    np.ndarray
        uint8 array with the same shape as *values*.
    """
    out = apply_window(values, window)
    if invert:
        out = OUTPUT_MAX - out
    return np.clip(np.rint(out), OUTPUT_MIN, OUTPUT_MAX).astype(np.uint8)
