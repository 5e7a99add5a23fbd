"""
generate_sample_data.py - Create synthetic DICOM files to open in the viewer.

Writes a handful of small DICOM files to data/samples/ (the folder the
"Open" dialog starts in) so the viewer can be tried without real patient
data. Each file exercises a different path through the loader.

Usage
-----
    python scripts/generate_sample_data.py

Then:
    python -m dicomview data/samples/ct_with_preset.dcm
"""

import os
import sys

import numpy as np
import pydicom
from pydicom.dataset import FileDataset
from pydicom.uid import ExplicitVRLittleEndian, RLELossless

# Make sure repo root is on the path when run as a script
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

from dicomview.config import CONFIG  # noqa: E402 - import after path fix

OUTPUT_FOLDER = os.path.join(_REPO_ROOT, CONFIG["paths"]["sample_folder"])


# ---------------------------------------------------------------------------
# Sample profiles
# ---------------------------------------------------------------------------
_SAMPLES = [
    # (filename, modality, photometric, window preset or None, compressed, declare charset, note)
    ("ct_with_preset.dcm", "CT", "MONOCHROME2", (40.0, 400.0), False, True, "stored soft-tissue window"),
    ("mr_no_preset.dcm", "MR", "MONOCHROME2", None, False, False, "min/max fallback, Latin-1 names without a declared charset"),
    ("dx_monochrome1.dcm", "DX", "MONOCHROME1", None, False, True, "inverted grayscale"),
    ("ct_rle.dcm", "CT", "MONOCHROME2", (40.0, 400.0), True, True, "RLE Lossless transfer syntax"),
]


def _make_pixels(size: int, seed: int) -> np.ndarray:
    """A noisy disc with a bright square, loosely resembling a CT slice."""
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[:size, :size]
    radius = np.hypot(yy - size / 2, xx - size / 2)

    pixels = np.where(radius < size * 0.45, 1064.0, 24.0)
    pixels += rng.normal(0, 20, size=(size, size))
    sq = size // 4
    pixels[sq : sq * 2, sq : sq * 2] = 1800.0
    return pixels.clip(0, 4095).astype(np.uint16)


def _make_dicom(
    path: str,
    modality: str,
    photometric: str,
    window,
    compressed: bool,
    declare_charset: bool = True,
    size: int = 128,
    seed: int = 42,
) -> None:
    """Write a single synthetic DICOM file."""
    file_meta = pydicom.Dataset()
    file_meta.MediaStorageSOPClassUID = pydicom.uid.UID("1.2.840.10008.5.1.4.1.1.2")
    file_meta.MediaStorageSOPInstanceUID = pydicom.uid.generate_uid()
    file_meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = FileDataset(path, {}, file_meta=file_meta, preamble=b"\0" * 128)
    ds.SOPClassUID = file_meta.MediaStorageSOPClassUID
    ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID

    # Without a declaration pydicom still writes Latin-1, so the overlay
    # has to fall back to ISO_IR 100 to show these names correctly
    if declare_charset:
        ds.SpecificCharacterSet = "ISO_IR 100"
    ds.PatientName = "Conceição^José"
    ds.PatientID = "00042"
    ds.StudyDate = "20230115"
    ds.Modality = modality
    ds.InstitutionName = "Hospital São Lucas"

    ds.RescaleSlope = 1.0
    ds.RescaleIntercept = -1024.0
    if window is not None:
        ds.WindowCenter, ds.WindowWidth = window

    ds.Rows = size
    ds.Columns = size
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = photometric
    ds.PixelRepresentation = 0
    ds.BitsAllocated = 16
    ds.BitsStored = 16
    ds.HighBit = 15
    ds.PixelData = _make_pixels(size, seed).tobytes()

    if compressed:
        ds.compress(RLELossless)

    ds.save_as(path)


def generate(output_folder: str = OUTPUT_FOLDER) -> None:
    """Generate all sample DICOM files into *output_folder*."""
    os.makedirs(output_folder, exist_ok=True)

    print(f"Writing {len(_SAMPLES)} sample DICOM files to: {output_folder}")
    print("-" * 60)

    for i, (filename, modality, photometric, window, compressed, declare_charset, note) in enumerate(_SAMPLES, start=1):
        _make_dicom(
            os.path.join(output_folder, filename),
            modality=modality,
            photometric=photometric,
            window=window,
            compressed=compressed,
            declare_charset=declare_charset,
            seed=42 + i,
        )
        print(f"  [{i:02d}/{len(_SAMPLES)}] {filename}  ({note})")

    print("-" * 60)
    print("Done.  Open one with:")
    print(f"  python -m dicomview {os.path.join(output_folder, _SAMPLES[0][0])}")


if __name__ == "__main__":
    generate()
