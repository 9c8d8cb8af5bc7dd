"""
==========================
Archive (ZIP) Helper Module
==========================

This module provides helper functions for building and inspecting the per-day ZIP archives.

Features:
- `archive_name`: Deterministic archive file name for an application and date key.
- `flattened_names`: Archive-root entry names for a list of files, de-duplicated.
- `build_archive`: Compress files into one ZIP, favouring speed over ratio.
- `archive_holds`: Check that an existing ZIP is intact and holds the content of given files.

Archives are flattened: every file lands at the archive root. Two files with the same name
from different folders become `name.ext` and `name (1).ext`, in the order given.

Usage:
>>> from logarchiver.helpers.compress import archive_name, build_archive
>>> archive_name("FileArchive", "20250101")
'FileArchive-20250101.zip'
>>> build_archive([("/src/a/x.log", "x.log")], "/staging/FileArchive-20250101.zip")

*Author: Sudharshan TK*\n
*Created: 2025-09-15*
"""

import os
import zipfile
import zlib
from collections import Counter
from typing import Iterable, Sequence

from logarchiver.errors import CompressionError

# Favour speed over ratio
COMPRESS_LEVEL = 1


def archive_name(app_name: str, key: str) -> str:
    return f"{app_name}-{key}.zip"


def flattened_names(paths: Iterable[str]) -> list[str]:
    """
    Map each path to an entry name at the archive root.
    Names are compared case-insensitively; repeats get ` (1)`, ` (2)`, ... before the suffix.

    Args:
        paths (Iterable[str]): Source paths, in archive order.

    Returns:
        list[str]: One unique entry name per path.
    """
    used = set()
    names = []
    for p in paths:
        base = os.path.basename(str(p))
        stem, suffix = os.path.splitext(base)
        name = base
        i = 1
        while name.lower() in used:
            name = f"{stem} ({i}){suffix}"
            i += 1
        used.add(name.lower())
        names.append(name)
    return names


def build_archive(entries: Sequence[tuple[str, str]], archive_path: str) -> int:
    """
    Compress files into a single ZIP at `archive_path`.

    Implementation:
    1. Write the ZIP to `archive_path.part` with DEFLATE at a low level.
    2. Rename it to `archive_path`, replacing any leftover from an earlier run.
    3. On any error remove the partial file.

    Args:
        entries (Sequence[tuple[str, str]]): (source path, entry name) pairs.
        archive_path (str): Output ZIP path.

    Returns:
        int: Size of the finished archive in bytes.

    Raises:
        CompressionError: If any member cannot be read or the archive cannot be written.
    """
    tmp_path = str(archive_path) + ".part"
    try:
        with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED,
                             compresslevel=COMPRESS_LEVEL, strict_timestamps=False) as zf:
            for src, arcname in entries:
                zf.write(src, arcname)
        os.replace(tmp_path, archive_path)
        return os.path.getsize(archive_path)
    except (OSError, ValueError, zipfile.LargeZipFile) as e:
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError:
            pass
        raise CompressionError(f"Failed to build {archive_path}: {e}") from e


def file_crc32(path: str, chunk_size: int = 1024 * 1024) -> int:
    """
    CRC-32 of a file, as stored in ZIP entry headers.
    """
    crc = 0
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            crc = zlib.crc32(chunk, crc)
    return crc


def archive_holds(archive_path: str, paths: Iterable[str]) -> bool:
    """
    Check that an existing ZIP is readable, passes its CRC checks and holds the content of
    every given file.

    Files are matched to entries by uncompressed size and CRC, never by entry name, so a
    file still matches after the files around it have changed (and with them its flattened
    name). Each entry can match one file only.

    Args:
        archive_path (str): ZIP to inspect.
        paths (Iterable[str]): Source files that must be in the archive.

    Returns:
        bool: True if every file's content is present in the intact archive.
    """
    try:
        with zipfile.ZipFile(archive_path) as zf:
            available = Counter((info.file_size, info.CRC) for info in zf.infolist())
            for p in paths:
                key = (os.path.getsize(p), file_crc32(p))
                if available[key] <= 0:
                    return False
                available[key] -= 1
            return zf.testzip() is None
    except (OSError, zipfile.BadZipFile):
        return False
