"""APK file validation and ZIP metadata extraction utilities."""

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from deltainstaller.exceptions import ApkFormatError, InstallerError

# End of central directory record
EOCD_SIGNATURE = b"PK\x05\x06"
EOCD_MIN_SIZE = 22
EOCD_MAX_COMMENT = 0xFFFF

# APK Signing Block footer: u64 block size followed by this magic
APK_SIG_BLOCK_MAGIC = b"APK Sig Block 42"
APK_SIG_BLOCK_FOOTER_SIZE = 8 + len(APK_SIG_BLOCK_MAGIC)


@dataclass
class ApkArchiveInfo:
    """Raw ZIP metadata of one APK."""

    cd_offset: int
    cd: bytes
    signature: bytes | None


def validate_apk_path(
    apk_path: Path,
    *,
    error_cls: type[InstallerError] = ApkFormatError,
) -> None:
    """Validate that an APK file path is valid.

    Performs the following checks:
    - File exists
    - Path is a file (not a directory)

    Installed split APKs keep their ``.apk`` suffix, but staged copies do
    not always, so the extension is not checked.

    Args:
        apk_path: Path to the APK file to validate.
        error_cls: Exception class to raise on validation failure.

    Raises:
        InstallerError (or subclass): If validation fails.
    """
    if not apk_path.exists():
        raise error_cls(f"APK not found: {apk_path}")

    if not apk_path.is_file():
        raise error_cls(f"Not a file: {apk_path}")


def _find_central_directory(f: BinaryIO, file_size: int) -> tuple[int, int]:
    """Locate the central directory from the end of central directory record.

    Returns:
        (offset, size) of the central directory.
    """
    tail_size = min(file_size, EOCD_MIN_SIZE + EOCD_MAX_COMMENT)
    f.seek(file_size - tail_size)
    tail = f.read(tail_size)

    # The record is the last signature whose comment length fits the file
    pos = tail.rfind(EOCD_SIGNATURE)
    while pos >= 0:
        if pos + EOCD_MIN_SIZE <= len(tail):
            (comment_len,) = struct.unpack_from("<H", tail, pos + 20)
            if pos + EOCD_MIN_SIZE + comment_len == len(tail):
                cd_size, cd_offset = struct.unpack_from("<II", tail, pos + 12)
                return cd_offset, cd_size
        pos = tail.rfind(EOCD_SIGNATURE, 0, pos)

    raise ApkFormatError("End of central directory record not found")


def _read_signature_block(f: BinaryIO, cd_offset: int) -> bytes | None:
    if cd_offset < APK_SIG_BLOCK_FOOTER_SIZE:
        return None

    f.seek(cd_offset - APK_SIG_BLOCK_FOOTER_SIZE)
    footer = f.read(APK_SIG_BLOCK_FOOTER_SIZE)
    if footer[8:] != APK_SIG_BLOCK_MAGIC:
        return None

    # The size field excludes itself (the leading u64)
    (block_size,) = struct.unpack_from("<Q", footer, 0)
    block_start = cd_offset - block_size - 8
    if block_start < 0:
        raise ApkFormatError(f"APK Signing Block size out of range: {block_size}")

    f.seek(block_start)
    return f.read(cd_offset - block_start)


def read_archive_info(apk_path: Path) -> ApkArchiveInfo:
    """Extract the central directory and APK Signing Block of an APK.

    Args:
        apk_path: Path to the APK file.

    Returns:
        ApkArchiveInfo with raw central directory and signing block bytes.

    Raises:
        ApkFormatError: If the file is not a readable ZIP archive.
    """
    validate_apk_path(apk_path)

    try:
        file_size = apk_path.stat().st_size
        with apk_path.open("rb") as f:
            cd_offset, cd_size = _find_central_directory(f, file_size)
            if cd_offset + cd_size > file_size:
                raise ApkFormatError(
                    f"Central directory out of range in {apk_path}: "
                    f"offset={cd_offset} size={cd_size}"
                )
            f.seek(cd_offset)
            cd = f.read(cd_size)
            signature = _read_signature_block(f, cd_offset)
    except OSError as e:
        raise ApkFormatError(f"Failed to read {apk_path}: {e}") from e

    return ApkArchiveInfo(cd_offset=cd_offset, cd=cd, signature=signature)
