"""
Firmware archive loading.

A firmware archive is a ZIP file holding a plain-text VERSION entry and one
raw image per device family, named "<Family>.bin".
"""

import logging
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from stm32_boot_flasher.errors import (
    ArchiveError,
    EncodingError,
    ImageNotFoundError,
    MissingVersionError,
    ReadError,
)

logger = logging.getLogger(__name__)

VERSION_ENTRY = "VERSION"


@dataclass(frozen=True)
class FirmwareArchive:
    """Version string and the image selected for one device family."""
    version: str
    family: str
    image_name: str
    image: bytes


def image_name_for(family: str) -> str:
    """Archive entry name holding the image for a family."""
    return f"{family}.bin"


def _read_entry(zf: zipfile.ZipFile, name: str) -> bytes:
    try:
        return zf.read(name)
    except (zipfile.BadZipFile, zlib.error, OSError, EOFError) as e:
        raise ReadError(f"reading archived file {name}") from e


def load_archive(path: Union[str, Path], family: str) -> FirmwareArchive:
    """
    Load the version and the image for family from a firmware archive.

    Args:
        path: Path to the ZIP archive
        family: Recognized device family tag (e.g. "G03x")

    Returns:
        FirmwareArchive with the trimmed version and raw image bytes

    Raises:
        ArchiveError: Archive cannot be opened or its index read
        MissingVersionError: No VERSION entry
        EncodingError: VERSION is not valid UTF-8
        ImageNotFoundError: No "<family>.bin" entry
        ReadError: An entry is truncated or unreadable
    """
    path = Path(path)
    try:
        zf = zipfile.ZipFile(path)
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveError(f"opening {path}") from e

    with zf:
        names = set(zf.namelist())

        if VERSION_ENTRY not in names:
            raise MissingVersionError("finding VERSION file in archive")
        raw_version = _read_entry(zf, VERSION_ENTRY)
        try:
            version = raw_version.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise EncodingError("reading contents of VERSION file") from e

        image_name = image_name_for(family)
        if image_name not in names:
            raise ImageNotFoundError(image_name)
        image = _read_entry(zf, image_name)

    logger.info(f"Archive {path.name}: version {version!r}, {image_name} ({len(image)} bytes)")
    return FirmwareArchive(
        version=version,
        family=family,
        image_name=image_name,
        image=image,
    )
