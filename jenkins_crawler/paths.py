"""
Output path definitions for crawl snapshots.

The output directory is injected (argument or OUTPUT_DIR setting). When
neither is given it falls back to the directory of the running program.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from jenkins_crawler.config import settings

logger = logging.getLogger(__name__)

SNAPSHOT_FILENAME = "out_{build_id}.json"


def program_dir() -> Path:
    """Directory of the running program (the script or ``python -m`` entry)."""
    if sys.argv and sys.argv[0]:
        return Path(sys.argv[0]).resolve().parent
    return Path.cwd()


def get_output_dir(output_dir: Optional[Union[str, Path]] = None) -> Path:
    """Resolve the snapshot directory: argument, then setting, then program dir."""
    if output_dir is not None:
        return Path(output_dir).resolve()
    if settings.OUTPUT_DIR:
        return Path(settings.OUTPUT_DIR).resolve()
    return program_dir()


def get_snapshot_path(build_id: str, output_dir: Optional[Union[str, Path]] = None) -> Path:
    """Get the snapshot file for a build: ``<output dir>/out_<build_id>.json``."""
    return get_output_dir(output_dir) / SNAPSHOT_FILENAME.format(build_id=build_id)
