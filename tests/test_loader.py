"""Tests for dicomview/loader.py."""

import numpy as np
import pydicom
import pytest
from pydicom.dataset import FileDataset
from pydicom.data import get_testdata_file
from pydicom.uid import ExplicitVRLittleEndian, JPEGBaseline8Bit, JPEGLSLossless, RLELossless

from dicomview.codec_registry import active_handles
from dicomview.loader import DecodedImage, load_image
from dicomview.metadata import extract_metadata
from dicomview.windowing import SOURCE_MINMAX, SOURCE_PRESET, Window, render_8bit


def _write_dicom(path: str, pixels: np.ndarray = None, compress: bool = False, **tags) -> None:
    """Write a minimal DICOM file with 16-bit grayscale pixel data."""
    file_meta = pydicom.Dataset()
    file_meta.MediaStorageSOPClassUID = pydicom.uid.UID("1.2.840.10008.5.1.4.1.1.2")
    file_meta.MediaStorageSOPInstanceUID = pydicom.uid.generate_uid()
    file_meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = FileDataset(path, {}, file_meta=file_meta, preamble=b"\0" * 128)
    ds.SOPClassUID = file_meta.MediaStorageSOPClassUID
    ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID
    ds.PatientName = "Test^Patient"
    ds.Modality = "CT"

    if pixels is not None:
        frames = pixels.shape[0] if pixels.ndim == 3 else 1
        rows, cols = pixels.shape[-2:]
        ds.Rows = rows
        ds.Columns = cols
        if frames > 1:
            ds.NumberOfFrames = frames
        ds.SamplesPerPixel = 1
        ds.PhotometricInterpretation = "MONOCHROME2"
        ds.PixelRepresentation = 0
        ds.BitsAllocated = 16
        ds.BitsStored = 16
        ds.HighBit = 15
        ds.PixelData = pixels.astype(np.uint16).tobytes()

    for key, value in tags.items():
        setattr(ds, key, value)

    if compress:
        ds.compress(RLELossless)
    ds.save_as(path)


def _ramp(rows: int = 8, cols: int = 16) -> np.ndarray:
    return (np.arange(rows * cols, dtype=np.uint16) * 10).reshape(rows, cols)


class TestDecodedImage:
    def test_valid_image(self):
        image = DecodedImage(width=3, height=2, pixels=bytes(6))
        assert image.as_array().shape == (2, 3)

    def test_buffer_size_mismatch_raises(self):
        with pytest.raises(ValueError, match="expected 6"):
            DecodedImage(width=3, height=2, pixels=bytes(5))

    def test_non_positive_dimensions_raise(self):
        with pytest.raises(ValueError, match="positive"):
            DecodedImage(width=0, height=2, pixels=b"")

    def test_array_view_is_read_only(self):
        image = DecodedImage(width=2, height=2, pixels=bytes(4))
        with pytest.raises(ValueError):
            image.as_array()[0, 0] = 1


class TestLoadFailures:
    def test_missing_file_returns_none(self, tmp_path):
        assert load_image(str(tmp_path / "nope.dcm")) is None

    def test_non_dicom_file_returns_none(self, tmp_path):
        path = tmp_path / "notes.dcm"
        path.write_text("this is not a DICOM file")
        assert load_image(str(path)) is None
        assert extract_metadata(str(path)).is_valid is False

    def test_header_without_pixels_returns_none(self, tmp_path):
        path = str(tmp_path / "header_only.dcm")
        _write_dicom(path, pixels=None, Rows=512, Columns=512)
        assert load_image(path) is None
        # The header is still perfectly readable
        meta = extract_metadata(path)
        assert meta.is_valid is True
        assert meta.dimensions == "512 x 512 px"

    def test_truncated_pixel_data_returns_none(self, tmp_path):
        path = str(tmp_path / "short.dcm")
        _write_dicom(path, _ramp())
        ds = pydicom.dcmread(path)
        ds.Rows = 64
        ds.Columns = 64
        ds.save_as(path)
        assert load_image(path) is None


class TestWindowPolicy:
    def test_stored_preset_is_used(self, tmp_path):
        pixels = _ramp()
        path = str(tmp_path / "preset.dcm")
        _write_dicom(path, pixels, WindowCenter=400, WindowWidth=201)

        image = load_image(path)

        assert image.window.source == SOURCE_PRESET
        expected = render_8bit(pixels, Window(center=400, width=201))
        np.testing.assert_array_equal(image.as_array(), expected)

    def test_first_preset_of_several_is_used(self, tmp_path):
        path = str(tmp_path / "presets.dcm")
        _write_dicom(path, _ramp(), WindowCenter=[400, 900], WindowWidth=[201, 50])
        image = load_image(path)
        assert (image.window.center, image.window.width) == (400.0, 201.0)

    def test_without_preset_minmax_maps_extremes(self, tmp_path):
        pixels = _ramp()
        path = str(tmp_path / "nopreset.dcm")
        _write_dicom(path, pixels)

        image = load_image(path)
        out = image.as_array()

        assert image.window.source == SOURCE_MINMAX
        assert out[0, 0] == 0
        assert out[-1, -1] == 255
        assert out.shape == pixels.shape

    def test_preset_is_applied_after_rescale(self, tmp_path):
        pixels = np.full((4, 4), 1024, dtype=np.uint16)
        pixels[0, 0] = 0
        path = str(tmp_path / "ct.dcm")
        # 1024 stored == 0 HU, the centre of this window
        _write_dicom(path, pixels, RescaleSlope=1, RescaleIntercept=-1024, WindowCenter=0.5, WindowWidth=100)

        out = load_image(path).as_array()

        assert out[0, 0] == 0
        assert out[1, 1] == 128

    def test_monochrome1_is_inverted(self, tmp_path):
        pixels = _ramp()
        path = str(tmp_path / "mono1.dcm")
        _write_dicom(path, pixels, PhotometricInterpretation="MONOCHROME1")

        out = load_image(path).as_array()

        assert out[0, 0] == 255
        assert out[-1, -1] == 0


class TestDecoding:
    def test_dimensions_and_buffer(self, tmp_path):
        path = str(tmp_path / "scan.dcm")
        _write_dicom(path, _ramp(rows=5, cols=7))
        image = load_image(path)
        assert (image.width, image.height) == (7, 5)
        assert len(image.pixels) == 35

    def test_rle_matches_uncompressed(self, tmp_path):
        pixels = _ramp()
        plain = str(tmp_path / "plain.dcm")
        rle = str(tmp_path / "rle.dcm")
        _write_dicom(plain, pixels)
        _write_dicom(rle, pixels, compress=True)

        assert pydicom.dcmread(rle).file_meta.TransferSyntaxUID == RLELossless
        assert load_image(rle).pixels == load_image(plain).pixels

    def test_jpeg_baseline_rgb_is_reduced_to_grey(self):
        path = get_testdata_file("SC_rgb_jpeg_dcmtk.dcm")
        assert pydicom.dcmread(path).file_meta.TransferSyntaxUID == JPEGBaseline8Bit

        image = load_image(path)

        assert image is not None
        assert (image.width, image.height) == (100, 100)
        assert len(image.pixels) == 100 * 100
        # Colour bars of different luma give more than one grey level
        assert len(np.unique(image.as_array())) > 1

    def test_rgb_rle_is_reduced_to_grey(self):
        image = load_image(get_testdata_file("SC_rgb_rle.dcm"))
        assert image is not None
        assert image.as_array().shape == (100, 100)

    def test_jpeg_ls_lossless_matches_uncompressed(self):
        path = get_testdata_file("MR_small_jpeg_ls_lossless.dcm")
        assert pydicom.dcmread(path).file_meta.TransferSyntaxUID == JPEGLSLossless

        image = load_image(path)

        assert image is not None
        assert (image.width, image.height) == (64, 64)
        assert image.pixels == load_image(get_testdata_file("MR_small.dcm")).pixels

    def test_multiframe_shows_first_frame(self, tmp_path):
        frames = np.stack([_ramp(), _ramp()[::-1]])
        path = str(tmp_path / "multi.dcm")
        _write_dicom(path, frames)

        image = load_image(path)

        assert (image.height, image.width) == frames.shape[1:]
        assert image.as_array()[0, 0] == 0

    def test_repeated_loads_are_identical(self, tmp_path):
        path = str(tmp_path / "scan.dcm")
        _write_dicom(path, _ramp(), WindowCenter=300, WindowWidth=600)
        assert load_image(path).pixels == load_image(path).pixels


class TestResourceDiscipline:
    def test_no_handles_leak_across_many_calls(self, tmp_path):
        good = str(tmp_path / "good.dcm")
        bad = tmp_path / "bad.dcm"
        _write_dicom(good, _ramp())
        bad.write_bytes(b"\0" * 200)

        for _ in range(25):
            load_image(good)
            extract_metadata(good)
            load_image(str(bad))
            extract_metadata(str(bad))

        assert active_handles() == 0
