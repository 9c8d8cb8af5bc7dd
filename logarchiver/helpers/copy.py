"""
==========================
File / Folder Copy Helper Functions
==========================

This module provides helper functions for copying, moving, verifying and deleting files.
Copies and moves land on a temporary `.part` file first and are renamed into place with
`os.replace`, so a destination file is either complete or absent.

Features:
- `safe_copy_file`: Copy a file via a `.part` temp file and an atomic rename.
- `move_file`: Move a file, renaming on the same volume and copying across volumes.
- `verify_file`: Confirm that a file exists at rest, optionally with an expected size.
- `delete_file`: Delete a single file.

Usage:
>>> from logarchiver.helpers.copy import move_file, verify_file
>>> move_file('/staging/App-20250101.zip', '//nas/archive/App-20250101.zip')
>>> verify_file('//nas/archive/App-20250101.zip', expected_size=1024)

*Author: Sudharshan TK*\n
*Created: 2025-09-02*
"""

import os
import shutil


def _remove_quietly(path: str | None):
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError:
            pass


def safe_copy_file(src: str, dst: str) -> None:
    """
    Copy `src` to `dst` (metadata included) via `dst.part` and an atomic rename.
    An existing `dst` is replaced.

    Args:
        src (str): Source file path.
        dst (str): Destination file path.

    Raises:
        OSError: If the copy fails. A leftover `.part` file is removed.
    """
    os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
    tmp_dst = str(dst) + ".part"
    try:
        shutil.copy2(src, tmp_dst)
        os.replace(tmp_dst, dst)
    except Exception:
        _remove_quietly(tmp_dst)
        raise


def move_file(src: str, dst: str) -> None:
    """
    Move `src` to `dst`, replacing an existing `dst`.

    Implementation:
    1. Try `os.replace` (a rename, only possible on the same volume).
    2. Otherwise copy to `dst.part` on the destination volume, rename it into place,
       then remove `src`.

    Raises:
        OSError: If the move fails. `src` is kept in that case.
    """
    try:
        os.replace(src, dst)
        return
    except OSError:
        pass

    safe_copy_file(src, dst)
    os.remove(src)


def verify_file(path: str, expected_size: int | None = None) -> bool:
    """
    Check that a regular file exists at `path` and, if given, has `expected_size` bytes.
    """
    try:
        if not os.path.isfile(path):
            return False
        return expected_size is None or os.path.getsize(path) == expected_size
    except OSError:
        return False


def delete_file(path: str) -> None:
    """
    Delete a single file. Raises OSError (including FileNotFoundError) on failure.
    """
    os.remove(path)
