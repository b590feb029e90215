"""Tests for firmware archive loading."""

import zipfile

import pytest

from stm32_boot_flasher.archive import image_name_for, load_archive
from stm32_boot_flasher.errors import (
    ArchiveError,
    EncodingError,
    ImageNotFoundError,
    MissingVersionError,
    ReadError,
)

from fakes import make_archive, pattern


def test_loads_version_and_image(tmp_path):
    image = pattern(300)
    path = make_archive(tmp_path, b"1.2.0\n", {"StmXY.bin": image, "Other.bin": b"\x00"})

    archive = load_archive(path, "StmXY")

    assert archive.version == "1.2.0"
    assert archive.image_name == "StmXY.bin"
    assert archive.image == image


def test_version_trims_only_outer_whitespace(tmp_path):
    path = make_archive(tmp_path, b"  \t1.2  beta\r\n\n", {"StmXY.bin": b"\x01"})
    assert load_archive(path, "StmXY").version == "1.2  beta"


def test_image_name_for_family():
    assert image_name_for("G03x") == "G03x.bin"


def test_missing_file_is_archive_error(tmp_path):
    with pytest.raises(ArchiveError) as ei:
        load_archive(tmp_path / "nope.zip", "StmXY")
    assert "nope.zip" in str(ei.value)


def test_not_a_zip_is_archive_error(tmp_path):
    path = tmp_path / "garbage.zip"
    path.write_bytes(b"this is not a zip file")
    with pytest.raises(ArchiveError):
        load_archive(path, "StmXY")


def test_missing_version(tmp_path):
    path = make_archive(tmp_path, None, {"StmXY.bin": b"\x01"})
    with pytest.raises(MissingVersionError):
        load_archive(path, "StmXY")


def test_version_not_utf8(tmp_path):
    path = make_archive(tmp_path, b"\xff\xfe1.0", {"StmXY.bin": b"\x01"})
    with pytest.raises(EncodingError):
        load_archive(path, "StmXY")


def test_missing_image_names_entry(tmp_path):
    path = make_archive(tmp_path, b"1.0", {"Other.bin": b"\x01"})
    with pytest.raises(ImageNotFoundError) as ei:
        load_archive(path, "StmXY")
    assert ei.value.entry_name == "StmXY.bin"
    assert "StmXY.bin" in str(ei.value)


def test_corrupt_entry_is_read_error(tmp_path):
    path = tmp_path / "corrupt.zip"
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
        zf.writestr("VERSION", b"1.0")
        zf.writestr("StmXY.bin", b"\x11" * 64)

    # Flip a byte inside the stored image data so its CRC no longer matches.
    blob = bytearray(path.read_bytes())
    idx = blob.find(b"\x11" * 64)
    blob[idx] = 0x22
    path.write_bytes(bytes(blob))

    with pytest.raises(ReadError):
        load_archive(path, "StmXY")


def test_corrupt_deflated_entry_is_read_error(tmp_path):
    path = tmp_path / "deflated.zip"
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("VERSION", b"1.0")
        zf.writestr("StmXY.bin", pattern(4096))
        info = zf.getinfo("StmXY.bin")

    # Scramble the compressed stream after the entry's local header.
    blob = bytearray(path.read_bytes())
    start = info.header_offset + 30 + len(info.filename.encode()) + len(info.extra)
    for idx in range(start, start + min(40, info.compress_size)):
        blob[idx] ^= 0x5A
    path.write_bytes(bytes(blob))

    with pytest.raises(ReadError):
        load_archive(path, "StmXY")
