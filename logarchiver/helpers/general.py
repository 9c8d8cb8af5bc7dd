"""
==========================
Helpers - General Operations
==========================

This module provides general helper functions for the application: date keys, volume lookup,
and free-space checks.

Features:
- `date_key`: UTC calendar date of a timestamp as `YYYYMMDD`.
- `volume_root`: Mount point of the volume holding a path.
- `free_bytes`: Free space on the volume holding a path.

Usage:
>>> from logarchiver.helpers.general import date_key, volume_root
>>> date_key(datetime.datetime(2025, 1, 2, 23, 30, tzinfo=datetime.UTC))
'20250102'
>>> volume_root("/data/app/logs")

*Author: Sudharshan TK*\n
*Created: 2025-09-14*
"""

import os
import datetime

import psutil


def to_utc(ts: float) -> datetime.datetime:
    """
    Convert a POSIX timestamp (e.g. `st_mtime`) to an aware UTC datetime.
    """
    return datetime.datetime.fromtimestamp(ts, datetime.UTC)


def date_key(dt: datetime.datetime) -> str:
    """
    Get the UTC calendar date of a datetime as `YYYYMMDD`.

    Args:
        dt (datetime.datetime): Aware datetime. Naive values are taken as UTC.

    Returns:
        str: Date key, e.g. `20250102`.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.UTC)
    return dt.astimezone(datetime.UTC).strftime("%Y%m%d")


def volume_root(path) -> str:
    """
    Get the mount point of the volume that holds `path`.
    Picks the longest mount point that is a prefix of the resolved path; falls back
    to the path's anchor (drive root) when no partition matches.

    Args:
        path (str): Any path on the volume.

    Returns:
        str: Mount point, e.g. `D:\\` or `/data`.
    """
    p = os.path.normcase(os.path.abspath(str(path)))
    best = ""
    for part in psutil.disk_partitions(all=True):
        mount = os.path.normcase(part.mountpoint)
        if not mount:
            continue
        prefix = mount if mount.endswith(os.sep) else mount + os.sep
        if (p == mount or p.startswith(prefix)) and len(mount) > len(best):
            best = part.mountpoint
    if best:
        return best
    drive, _ = os.path.splitdrive(p)
    return drive + os.sep if drive else os.sep


def free_bytes(path) -> int:
    """
    Free space, in bytes, on the volume holding `path`.
    """
    return psutil.disk_usage(str(path)).free

