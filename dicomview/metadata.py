"""
metadata.py - Patient/study header fields for the on-screen overlay.

Only the header is read (``stop_before_pixels=True``), so extraction stays
cheap even for large compressed images. Missing tags degrade to a
placeholder; only a header that cannot be read at all makes the record
invalid.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from pydicom.dataset import Dataset
from pydicom.errors import BytesLengthException
from pydicom.multival import MultiValue

from dicomview.codec_registry import open_dataset
from dicomview.config import CONFIG

logger = logging.getLogger(__name__)

# Header keywords shown in the overlay, in display order
DISPLAY_TAGS: dict[str, str] = {
    "patient_name": "PatientName",
    "patient_id": "PatientID",
    "study_date": "StudyDate",
    "modality": "Modality",
    "institution": "InstitutionName",
}


@dataclass(frozen=True)
class StudyMetadata:
    """Display strings for one file plus a flag saying whether they are real."""
    patient_name: str = ""
    patient_id: str = ""
    study_date: str = ""
    modality: str = ""
    institution: str = ""
    dimensions: str = ""
    is_valid: bool = False

    @classmethod
    def invalid(cls) -> "StudyMetadata":
        return cls()

    def as_dict(self) -> dict[str, str]:
        fields = asdict(self)
        fields.pop("is_valid")
        return fields


def format_study_date(raw: str) -> str:
    """
    Reformat a DICOM DA value (YYYYMMDD) as DD/MM/YYYY.

    Only values of exactly eight characters are reformatted; anything else
    (partial dates, empty strings, placeholders) is returned unchanged.
    """
    if len(raw) != 8:
        return raw
    return f"{raw[6:8]}/{raw[4:6]}/{raw[0:4]}"


def read_tag(ds: Dataset, keyword: str) -> Optional[str]:
    """
    Return the first value of *keyword* as a string, or None if absent.

    A tag that is present but empty gives ``""``. A value that cannot be
    decoded (wrong length for its VR, undecodable text) is treated as
    absent so one bad element does not spoil the rest of the header.
    """
    if keyword not in ds:
        return None

    # Elements are converted from raw bytes on first access
    try:
        value = ds.data_element(keyword).value
        if isinstance(value, MultiValue):
            value = value[0] if len(value) else None
        if value is None:
            return ""
        return str(value).strip()
    except (ValueError, BytesLengthException) as exc:
        logger.debug("Cannot decode %s: %s", keyword, exc)
        return None


def _dimensions(ds: Dataset, placeholder: str) -> str:
    columns = read_tag(ds, "Columns")
    rows = read_tag(ds, "Rows")
    if not columns or not rows:
        return placeholder
    return f"{columns} x {rows} px"


def metadata_from_dataset(
    ds: Dataset,
    placeholder: Optional[str] = None,
    fallback_charset: Optional[str] = None,
) -> StudyMetadata:
    """
    Build the overlay record from an already-loaded header.

    Parameters
    ----------
    ds : Dataset
        Header dataset; pixel data is not needed.
    placeholder : str, optional
        Text for missing tags. Defaults to the config value ("N/A").
    fallback_charset : str, optional
        Character set assumed when the file declares none.
        Defaults to the config value (ISO_IR 100, i.e. Latin-1).

    Returns
    -------
    StudyMetadata
        Always valid; individual fields may hold *placeholder*.
    """
    meta_cfg = CONFIG["metadata"]
    placeholder = placeholder if placeholder is not None else meta_cfg["placeholder"]
    fallback_charset = fallback_charset or meta_cfg["fallback_charset"]

    # Text elements are decoded lazily on first access, so declaring the
    # character set here still applies to every field read below.
    if not ds.get("SpecificCharacterSet"):
        ds.SpecificCharacterSet = fallback_charset

    fields = {}
    for name, keyword in DISPLAY_TAGS.items():
        value = read_tag(ds, keyword)
        if value is None:
            logger.debug("Tag %s missing; using placeholder.", keyword)
            value = placeholder
        fields[name] = value

    fields["study_date"] = format_study_date(fields["study_date"])

    return StudyMetadata(
        dimensions=_dimensions(ds, placeholder),
        is_valid=True,
        **fields,
    )


def extract_metadata(path: str) -> StudyMetadata:
    """
    Read the overlay fields from the header of the DICOM file at *path*.

    Parameters
    ----------
    path : str
        Path to a DICOM file.

    Returns
    -------
    StudyMetadata
        ``is_valid`` is False only when the header itself cannot be read.
    """
    try:
        with open_dataset(path, stop_before_pixels=True) as ds:
            return metadata_from_dataset(ds)
    except Exception as exc:
        logger.warning("Could not read DICOM header from %s: %s", path, exc)
        return StudyMetadata.invalid()
