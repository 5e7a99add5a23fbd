"""
presentation.py - Qt-free helpers for the viewer window.

Everything the window shows as text, and where the file dialog starts,
is decided here so it can be tested without a display.
"""

import os
from typing import Optional

from dicomview.metadata import StudyMetadata

OVERLAY_LABELS: dict[str, str] = {
    "patient_name": "Patient",
    "patient_id": "ID",
    "study_date": "Study date",
    "modality": "Modality",
    "institution": "Institution",
    "dimensions": "Size",
}

FILE_FILTER = "DICOM Files (*.dcm);;All Files (*)"


def overlay_lines(metadata: Optional[StudyMetadata]) -> list[str]:
    """
    Return the overlay text, one ``"Label: value"`` line per field.

    An invalid or missing record gives no lines: its fields are not
    real data and must not be shown.
    """
    if metadata is None or not metadata.is_valid:
        return []
    fields = metadata.as_dict()
    return [f"{label}: {fields[name]}" for name, label in OVERLAY_LABELS.items()]


def overlay_text(metadata: Optional[StudyMetadata], separator: str = "   |   ") -> str:
    return separator.join(overlay_lines(metadata))


def initial_directory(base_dir: str, sample_folder: Optional[str] = None) -> str:
    """
    Directory the "Open" dialog starts in.

    *sample_folder* (relative to *base_dir*) when it exists, otherwise
    *base_dir* itself.
    """
    if sample_folder:
        candidate = os.path.join(base_dir, sample_folder)
        if os.path.isdir(candidate):
            return candidate
    return base_dir


def error_message(path: str) -> str:
    return (
        f"Failed to process image:\n{os.path.basename(path)}\n\n"
        "Check that the file is a valid DICOM image."
    )
