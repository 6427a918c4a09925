#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
docview - embedded document viewer launcher

Opens a (remote or local) PDF in a standalone viewer window.  Mostly useful
for trying out a source URL and its auth headers before embedding the
viewer in an application.

Usage::

    python -m docview_project.src.main https://host/doc.pdf --header Authorization="Bearer x"
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from .utils.logging_utils import setup_logging


def _parse_headers(pairs: Sequence[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Header must look like KEY=VALUE, got {pair!r}")
        headers[key.strip()] = value.strip()
    return headers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docview", description="Display a PDF document.")
    parser.add_argument("src", help="Document URL, file:// URI or local path")
    parser.add_argument("--header", action="append", default=[], metavar="KEY=VALUE",
                        help="HTTP header sent with the document request (repeatable)")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the viewer launcher.
    Sets up logging, loads the document and runs the Qt event loop.

    Returns:
        int: Exit code (0 for success)
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        headers = _parse_headers(args.header)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))
    setup_logging(logging.DEBUG if args.debug else logging.INFO, log_file=args.log_file)
    logger = logging.getLogger(__name__)
    logger.info("Starting docview")

    # Import Qt modules here so --help works without a display
    from PySide6.QtWidgets import QApplication

    from .controllers.viewer_controller import ViewerController
    from .core.errors import ViewerError
    from .services.fitz_engine import FitzEngine
    from .services.settings_service import SettingsService
    from .services.transport import HttpTransport
    from .ui.viewer_surface import ViewerSurface
    from .ui.viewport import ScreenViewportInspector

    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName("docview")

    settings = SettingsService()
    transport = HttpTransport.from_settings(settings)
    surface = ViewerSurface()
    surface.resize(900, 1100)
    controller = ViewerController(
        FitzEngine(transport),
        surface,
        ScreenViewportInspector.from_settings(settings, surface),
        transport=transport,
        settings=settings,
    )

    async def _load() -> None:
        await controller.set_source(args.src, headers)
        await controller.render_all()

    try:
        surface.show()
        asyncio.run(_load())
    except ViewerError as exc:
        logger.error("Could not display %s: %s", args.src, exc)
        return 1

    exit_code = app.exec()
    logger.info("Viewer exited with code %s", exit_code)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
