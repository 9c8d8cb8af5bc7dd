"""
==========================
File Archive Worker Module
==========================

This module archives aged files from a folder tree into one ZIP per day and removes the
originals once each archive is safely at its destination.
(Configure the `keep_days` setting in `.config.yml` to adjust the number of days kept in place.)

Features:
- Scans the source tree for files older than the retention threshold.
- Groups them by the UTC date of their last write time.
- Builds `<app>-<YYYYMMDD>.zip` in a local, hidden staging folder.
- Moves the archive to the destination, verifies it, then deletes the sources.
- Keeps a failed bucket's sources untouched and carries on with the next bucket.

Usage:
>>> worker = FileArchiveWorker(config, log)
>>> summary = worker.run()
>>> print(len(summary.archived_buckets), summary.deleted_files)

*Author: Sudharshan TK*\n
*Created: 2025-09-15*
"""
from logarchiver.workers.archive.worker import *
