"""
cli.py - Command-line entry point.

Usage
-----
    dicomview                          # open the viewer window
    dicomview scan.dcm                 # open the viewer with a file loaded
    dicomview scan.dcm --snapshot out.png   # render to PNG, no window
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from dicomview import __version__
from dicomview.codec_registry import codec_session
from dicomview.config import reload_config
from dicomview.logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dicomview",
        description="Open a DICOM file and display it with pan and zoom.",
    )
    parser.add_argument("path", nargs="?", help="DICOM file to open")
    parser.add_argument(
        "--snapshot",
        metavar="OUT.png",
        help="render PATH to an image file instead of opening a window",
    )
    parser.add_argument("--config", help="YAML config file (default: config.yaml at the repo root)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-file", help="also write logs to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _snapshot(path: str, output_path: str) -> int:
    import matplotlib
    matplotlib.use("Agg")  # non-interactive backend, works without a display

    from dicomview.visualization import save_snapshot

    return 0 if save_snapshot(path, output_path) else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.snapshot and not args.path:
        parser.error("--snapshot needs a PATH to render")

    if args.config:
        reload_config(args.config)
    configure_logging(level=args.log_level, log_file=args.log_file)

    # Decoders are registered once for the whole run and released at exit
    with codec_session():
        if args.snapshot:
            return _snapshot(args.path, args.snapshot)

        from dicomview.viewer import run
        return run(args.path)


if __name__ == "__main__":
    sys.exit(main())
