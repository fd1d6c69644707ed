"""Reading and writing ``.bfx`` export package files."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..exceptions import StorageError
from .envelope import SealedPackage

logger = logging.getLogger(__name__)

PACKAGE_EXTENSION = ".bfx"


def generate_export_filename(
    prefix: str = "eligibility-results",
    now: Optional[datetime] = None,
) -> str:
    """Build a timestamped export filename stem, e.g. ``eligibility-results-2024-05-01-14-03-09``."""
    now = now or datetime.now()
    return f"{prefix}-{now.strftime('%Y-%m-%d')}-{now.strftime('%H-%M-%S')}"


def write_package(path: Union[str, Path], package: SealedPackage) -> Path:
    """Write a sealed package as JSON. Adds the .bfx extension if missing."""
    path = Path(path)
    if not path.suffix:
        path = path.with_suffix(PACKAGE_EXTENSION)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(package.to_json(), encoding="utf-8")
    except OSError as e:
        raise StorageError("Could not write export file", operation="write_package") from e
    logger.info("Wrote export package %s", path.name)
    return path


def read_package(path: Union[str, Path]) -> SealedPackage:
    """Read a package file.

    Raises:
        StorageError: File cannot be read
        MalformedPackageError: File is not a {salt, encrypted} package
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise StorageError("Could not read export file", operation="read_package") from e
    return SealedPackage.from_json(raw)
