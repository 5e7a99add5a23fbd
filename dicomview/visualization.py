"""
visualization.py - matplotlib rendering of a loaded image.

Used for headless snapshots (``dicomview --snapshot out.png``). The plot
function returns the Figure so callers can save or display it as needed.
"""

import logging
from typing import Optional

import matplotlib.pyplot as plt

from dicomview.config import CONFIG
from dicomview.loader import DecodedImage, load_image
from dicomview.metadata import StudyMetadata, extract_metadata
from dicomview.presentation import overlay_lines

logger = logging.getLogger(__name__)


def plot_decoded_image(
    image: DecodedImage,
    metadata: Optional[StudyMetadata] = None,
    title: Optional[str] = None,
    cmap: Optional[str] = None,
) -> plt.Figure:
    """
    Display a rendered raster with the metadata overlay in the corner.

    The raster is already windowed to 0-255, so the colour scale is pinned
    to that range instead of letting matplotlib stretch it again.

    Parameters
    ----------
    image : DecodedImage
        Output of :func:`dicomview.loader.load_image`.
    metadata : StudyMetadata, optional
        Overlay fields; nothing is drawn for an invalid record.
    title : str, optional
        Plot title.
    cmap : str, optional
        Colour map. Defaults to the config value ("gray").

    Returns
    -------
    plt.Figure
    """
    cmap = cmap or CONFIG["snapshot"]["cmap"]
    aspect = image.height / image.width
    fig, ax = plt.subplots(figsize=(6, max(2.0, 6 * aspect)))
    fig.patch.set_facecolor("black")

    ax.imshow(image.as_array(), cmap=cmap, vmin=0, vmax=255, interpolation="nearest")
    ax.axis("off")

    if title:
        ax.set_title(title, color="white")

    lines = overlay_lines(metadata)
    if lines:
        ax.text(
            0.01, 0.99, "\n".join(lines),
            transform=ax.transAxes,
            va="top", ha="left",
            fontsize=8, color="yellow", family="monospace",
        )

    fig.tight_layout()
    return fig


def save_snapshot(path: str, output_path: str, dpi: Optional[int] = None) -> bool:
    """
    Load *path*, render it with its overlay and save the figure to *output_path*.

    Returns
    -------
    bool
        False if the image could not be loaded; nothing is written then.
    """
    image = load_image(path)
    if image is None:
        logger.error("Cannot render snapshot: %s did not load.", path)
        return False

    metadata = extract_metadata(path)
    fig = plot_decoded_image(image, metadata)
    try:
        fig.savefig(
            output_path,
            dpi=dpi or CONFIG["snapshot"]["dpi"],
            bbox_inches="tight",
            facecolor=fig.get_facecolor(),
        )
    finally:
        plt.close(fig)
    logger.info("Saved snapshot of %s to %s", path, output_path)
    return True
