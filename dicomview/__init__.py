"""
dicomview - a small desktop viewer for single DICOM files.

The two entry points most callers need are :func:`dicomview.loader.load_image`
and :func:`dicomview.metadata.extract_metadata`.
"""

__version__ = "1.0.1"
