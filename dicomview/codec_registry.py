"""
codec_registry.py - Process-wide decoder registration and scoped file handles.

pydicom discovers its pixel-data plugins (numpy for RLE, pylibjpeg for
JPEG and JPEG-LS) on its own. This module runs that check once at start-up,
reports which compressed transfer syntaxes cannot be decoded, and brackets
the application lifetime with an explicit setup/teardown pair.

It also owns the only place where DICOM files are opened, so every handle
is counted and released on every path. ``active_handles()`` is zero between
calls; the integration tests rely on that.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

import pydicom
from pydicom.dataset import FileDataset
from pydicom.pixels import get_decoder
from pydicom.uid import (
    JPEGBaseline8Bit,
    JPEGExtended12Bit,
    JPEGLosslessSV1,
    JPEGLSLossless,
    JPEGLSNearLossless,
    RLELossless,
    UID,
)

from dicomview.config import CONFIG

logger = logging.getLogger(__name__)

# Compressed transfer syntaxes the viewer is expected to open
REQUIRED_SYNTAXES: dict[str, UID] = {
    "JPEG Baseline": JPEGBaseline8Bit,
    "JPEG Extended": JPEGExtended12Bit,
    "JPEG Lossless": JPEGLosslessSV1,
    "JPEG-LS Lossless": JPEGLSLossless,
    "JPEG-LS Near-Lossless": JPEGLSNearLossless,
    "RLE Lossless": RLELossless,
}


@dataclass
class CodecStatus:
    """Outcome of the start-up decoder check."""
    available: list[str] = field(default_factory=list)
    missing: dict[str, list[str]] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.missing


_registered = False
_status = CodecStatus()
_active_handles = 0


def register_codecs() -> CodecStatus:
    """
    Check that a decoder is available for every syntax in REQUIRED_SYNTAXES.

    Safe to call more than once; only the first call does any work.

    Returns
    -------
    CodecStatus
        Names of usable syntaxes and, for the others, the missing packages.
    """
    global _registered, _status
    if _registered:
        return _status

    status = CodecStatus()
    for name, uid in REQUIRED_SYNTAXES.items():
        try:
            decoder = get_decoder(uid)
        except NotImplementedError:
            status.missing[name] = ["no decoder for this transfer syntax"]
            continue

        if decoder.is_available:
            status.available.append(name)
        else:
            missing = decoder.missing_dependencies
            status.missing[name] = missing
            logger.warning("No usable decoder for %s (%s): %s", name, uid, "; ".join(missing))

    logger.info(
        "Codecs registered: %d of %d transfer syntaxes available.",
        len(status.available), len(REQUIRED_SYNTAXES),
    )
    _status = status
    _registered = True
    return status


def cleanup_codecs() -> None:
    """Release the registration made by :func:`register_codecs`."""
    global _registered, _status
    if not _registered:
        return
    if _active_handles:
        logger.warning("Codec cleanup with %d file handle(s) still open.", _active_handles)
    _registered = False
    _status = CodecStatus()
    logger.debug("Codecs released.")


def is_registered() -> bool:
    return _registered


def ensure_registered() -> CodecStatus:
    """Register on first use when the entry point did not do it explicitly."""
    if not _registered:
        logger.debug("Decoders used before explicit registration; registering now.")
    return register_codecs()


@contextmanager
def codec_session() -> Iterator[CodecStatus]:
    """Bracket the application lifetime with codec registration and cleanup."""
    status = register_codecs()
    try:
        yield status
    finally:
        cleanup_codecs()


def active_handles() -> int:
    """Number of DICOM files currently held open by this package."""
    return _active_handles


@contextmanager
def open_dataset(path: str, stop_before_pixels: bool = False) -> Iterator[FileDataset]:
    """
    Open *path*, parse it with pydicom and yield the dataset.

    The file handle is closed when the block exits, whether parsing
    succeeded or raised. Pixel data is read fully into memory, so the
    yielded dataset stays usable after the handle is gone.

    Raises
    ------
    OSError
        If the file cannot be opened.
    pydicom.errors.InvalidDicomError
        If the content is not DICOM (and ``reader.force`` is off).
    """
    global _active_handles
    with open(path, "rb") as fp:
        _active_handles += 1
        try:
            yield pydicom.dcmread(
                fp,
                stop_before_pixels=stop_before_pixels,
                force=CONFIG["reader"]["force"],
            )
        finally:
            _active_handles -= 1
